"""
Factory Boy base classes for the test suite.

Factories persist through whatever session the ``_factories_session``
fixture registered for the running test, and only ``flush``: the
transactional fixture decides what is kept.
"""

from __future__ import annotations

import factory


class SQLAlchemySession:
    """Holder for the session of the current test."""

    _session = None

    @classmethod
    def set(cls, session):
        cls._session = session

    @classmethod
    def get(cls):
        """
        Return the registered session.

        Raises
        ------
        RuntimeError
            If a factory is used outside the ``session`` fixture.
        """
        if cls._session is None:
            raise RuntimeError("No factory session registered; request the 'session' fixture.")
        return cls._session


class BaseFactory(factory.alchemy.SQLAlchemyModelFactory):
    """Abstract factory bound lazily to :class:`SQLAlchemySession`."""

    class Meta:
        abstract = True
        sqlalchemy_session_factory = SQLAlchemySession.get
        sqlalchemy_session_persistence = "flush"

import pytest
from sqlalchemy import select

from storefront_access.models.user import User
from storefront_access.uow import SQLAlchemyUnitOfWork as RWuow
from tests.factories.user import UserFactory


class TestSQLAlchemyUnitOfWork:
    def test_commits_on_clean_exit(self, session):
        """
        Objects added inside the writer are visible after it exits.
        """
        with RWuow() as uow:
            user = UserFactory.build(email="writer@example.com")
            uow.users.add(user)

        found = session.execute(select(User).where(User.email == "writer@example.com")).scalar_one()
        assert found.name == user.name

    def test_rolls_back_on_error(self, session):
        """
        An exception inside the writer discards its changes and propagates.
        """
        with pytest.raises(LookupError), RWuow() as uow:
            uow.users.add(UserFactory.build(email="ghost@example.com"))
            raise LookupError("boom")

        assert session.execute(select(User).where(User.email == "ghost@example.com")).first() is None

    def test_repositories_share_the_session(self, session):
        uow = RWuow()
        assert uow.users.session is uow.tickets.session
        assert uow.refresh_tokens.session is uow.verification_tokens.session

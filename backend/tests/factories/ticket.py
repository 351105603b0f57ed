"""Factory Boy definitions for tickets."""

from __future__ import annotations

import factory

from storefront_access.models.ticket import Ticket, TicketStatus
from tests.factories import BaseFactory


class TicketFactory(BaseFactory):
    """
    Build persisted :class:`Ticket` instances.

    ``access_code_hash`` is ``None`` unless given; tests hash their own codes.
    """

    class Meta:
        model = Ticket

    number = factory.Sequence(lambda n: 1000 + n)
    title = factory.Faker("sentence", nb_words=4)
    status = TicketStatus.OPEN
    requester_id = None
    requester_email = factory.Sequence(lambda n: f"requester{n}@example.com")
    order_id = None
    access_code_hash = None

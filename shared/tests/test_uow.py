"""Tests for the Django unit of work."""

from __future__ import annotations

from dataclasses import dataclass

from django.test import TestCase

from shared.application.message_bus import message_bus
from shared.application.uow import DjangoUnitOfWork
from shared.domain.base import Aggregate, DomainEvent


@dataclass
class BayReserved(DomainEvent):
    bay: int = 1


@dataclass(eq=False)
class Bay(Aggregate):
    number: int = 1

    def reserve(self):
        self.add_event(BayReserved(aggregate_id=self.id, bay=self.number))


class DjangoUnitOfWorkTests(TestCase):
    def setUp(self) -> None:
        self.received = []
        message_bus.register_event_handler(BayReserved, self.received.append)

    def tearDown(self) -> None:
        message_bus._event_handlers.pop(BayReserved, None)

    def test_events_published_after_commit(self) -> None:
        bay = Bay(number=3)
        bay.reserve()

        with self.captureOnCommitCallbacks(execute=True):
            with DjangoUnitOfWork() as uow:
                uow.collect_events(bay)
                self.assertEqual(self.received, [])

        self.assertEqual([event.bay for event in self.received], [3])
        self.assertEqual(bay.events, [])

    def test_events_discarded_on_rollback(self) -> None:
        bay = Bay()
        bay.reserve()

        with self.captureOnCommitCallbacks(execute=True):
            with self.assertRaises(RuntimeError):
                with DjangoUnitOfWork() as uow:
                    uow.collect_events(bay)
                    raise RuntimeError("conflict")

        self.assertEqual(self.received, [])

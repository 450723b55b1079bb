"""RSVP admission tests: capacity, waitlist, cancellation.

Covers:
- First N registrations on a capacity-N event are going, the rest waitlisted
- Unlimited events admit everyone
- One row per (user, event); re-registering re-evaluates in place
- External signup mode never touches RSVPs
- Cancellation is idempotent and does not promote the waitlist by default
- Opt-in waitlist promotion (earliest arrival first)
- Concurrent registrations never admit past capacity
"""
import os
import threading
import time
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.config import settings
from app.database import Base
from app.models.event import Event
from app.models.rsvp import Rsvp, RSVPStatus
from app.models.user import User
from app.services import rsvp_service
from tests.conftest import auth_headers, create_test_event, register


def _users(n: int) -> list[dict]:
    return [auth_headers(f"member{i}@example.com") for i in range(n)]


def _cancel(client, event_id: int, headers: dict):
    return client.delete(f"/events/{event_id}/register", headers=headers)


def _status(resp) -> str:
    assert resp.status_code == 200, resp.text
    return resp.json()["rsvp"]["status"]


class TestAdmission:
    """Going vs waitlist decisions."""

    def test_capacity_n_admits_first_n(self, client, alice):
        event = create_test_event(client, alice, capacity=3)
        statuses = [_status(register(client, event["id"], h)) for h in _users(5)]
        assert statuses == ["going", "going", "going", "waitlist", "waitlist"]

        detail = client.get(f"/events/{event['id']}", headers=alice).json()
        assert detail["goingCount"] == 3
        assert detail["waitlistCount"] == 2

    def test_unlimited_capacity_admits_everyone(self, client, alice):
        event = create_test_event(client, alice)
        statuses = {_status(register(client, event["id"], h)) for h in _users(12)}
        assert statuses == {"going"}

    def test_register_response_shape(self, client, alice, bob):
        event = create_test_event(client, alice)
        rsvp = register(client, event["id"], bob).json()["rsvp"]
        assert rsvp["eventId"] == event["id"]
        assert rsvp["status"] == "going"
        assert "createdAt" in rsvp

    def test_rsvp_alias_path(self, client, alice, bob):
        event = create_test_event(client, alice)
        resp = client.post(f"/events/{event['id']}/rsvp", headers=bob)
        assert _status(resp) == "going"
        resp = client.delete(f"/events/{event['id']}/rsvp", headers=bob)
        assert _status(resp) == "cancelled"

    def test_register_provisions_user(self, client, alice, db):
        event = create_test_event(client, alice)
        register(client, event["id"], auth_headers("newcomer@example.com"))
        assert db.query(User).filter(User.email == "newcomer@example.com").count() == 1

    def test_register_missing_event(self, client, bob):
        resp = register(client, 31337, bob)
        assert resp.status_code == 404

    def test_register_cancelled_event_rejected(self, client, alice, bob, db):
        event = create_test_event(client, alice)
        client.delete(f"/events/{event['id']}", headers=alice)

        resp = register(client, event["id"], bob)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Event is cancelled"}
        assert db.query(Rsvp).count() == 0


class TestReRegistration:
    """A pair has at most one row; re-registering overwrites its status."""

    def test_register_twice_keeps_one_row(self, client, alice, bob, db):
        event = create_test_event(client, alice, capacity=1)
        assert _status(register(client, event["id"], bob)) == "going"
        assert _status(register(client, event["id"], bob)) == "going"

        rows = db.query(Rsvp).filter(Rsvp.event_id == event["id"]).all()
        assert len(rows) == 1
        assert rows[0].status == RSVPStatus.going

    def test_waitlisted_user_registering_again_stays_waitlisted(self, client, alice, bob, carol, db):
        event = create_test_event(client, alice, capacity=1)
        register(client, event["id"], bob)
        assert _status(register(client, event["id"], carol)) == "waitlist"
        assert _status(register(client, event["id"], carol)) == "waitlist"
        assert db.query(Rsvp).filter(Rsvp.event_id == event["id"]).count() == 2

    def test_cancel_then_register_on_full_event(self, client, alice, bob, carol):
        event = create_test_event(client, alice, capacity=1)
        register(client, event["id"], bob)
        register(client, event["id"], carol)

        # Carol leaves the waitlist and comes back; the slot is still taken
        _cancel(client, event["id"], carol)
        assert _status(register(client, event["id"], carol)) == "waitlist"

        # Bob frees the slot; Carol's next registration is admitted
        _cancel(client, event["id"], bob)
        assert _status(register(client, event["id"], carol)) == "going"

    def test_re_registration_keeps_arrival_time(self, client, alice, bob, db):
        event = create_test_event(client, alice)
        first = register(client, event["id"], bob).json()["rsvp"]["createdAt"]
        _cancel(client, event["id"], bob)
        again = register(client, event["id"], bob).json()["rsvp"]["createdAt"]
        assert first == again


class TestExternalSignup:
    """External events delegate signup to another site."""

    def test_external_register_rejected_with_url(self, client, alice, bob, db):
        event = create_test_event(
            client, alice,
            signupMode="external",
            externalUrl="https://tickets.example.org/summit",
            capacity=10,
        )
        resp = register(client, event["id"], bob)
        assert resp.status_code == 400
        assert resp.json() == {
            "error": "External signup only",
            "externalUrl": "https://tickets.example.org/summit",
        }
        assert db.query(Rsvp).count() == 0

    def test_switch_to_external_leaves_existing_rsvp_untouched(self, client, alice, bob, db):
        event = create_test_event(client, alice)
        register(client, event["id"], bob)
        client.put(
            f"/events/{event['id']}",
            json={"signupMode": "external", "externalUrl": "https://tickets.example.org/x"},
            headers=alice,
        )

        resp = register(client, event["id"], bob)
        assert resp.status_code == 400
        rows = db.query(Rsvp).all()
        assert len(rows) == 1
        assert rows[0].status == RSVPStatus.going


class TestCancellation:
    """Cancel is idempotent and, by default, leaves the waitlist alone."""

    def test_cancel_without_rsvp_is_noop(self, client, alice, bob, db):
        event = create_test_event(client, alice)
        resp = _cancel(client, event["id"], bob)
        assert resp.status_code == 200
        assert resp.json() == {"rsvp": None}
        assert db.query(Rsvp).count() == 0

    def test_cancel_twice(self, client, alice, bob):
        event = create_test_event(client, alice)
        register(client, event["id"], bob)
        assert _status(_cancel(client, event["id"], bob)) == "cancelled"
        assert _status(_cancel(client, event["id"], bob)) == "cancelled"

    def test_cancel_waitlisted(self, client, alice, bob, carol):
        event = create_test_event(client, alice, capacity=1)
        register(client, event["id"], bob)
        register(client, event["id"], carol)
        assert _status(_cancel(client, event["id"], carol)) == "cancelled"

        detail = client.get(f"/events/{event['id']}", headers=alice).json()
        assert detail["goingCount"] == 1
        assert detail["waitlistCount"] == 0

    def test_cancel_missing_event(self, client, bob):
        resp = _cancel(client, 999, bob)
        assert resp.status_code == 404

    def test_cancelled_rows_do_not_count(self, client, alice, bob, carol):
        event = create_test_event(client, alice, capacity=1)
        register(client, event["id"], bob)
        _cancel(client, event["id"], bob)
        assert _status(register(client, event["id"], carol)) == "going"

    def test_waitlist_not_promoted_on_cancel(self, client, alice):
        """Capacity 2: A and B going, C waitlisted; A cancels and C stays on the waitlist."""
        a, b, c = _users(3)
        event = create_test_event(client, alice, capacity=2)
        assert _status(register(client, event["id"], a)) == "going"
        assert _status(register(client, event["id"], b)) == "going"
        assert _status(register(client, event["id"], c)) == "waitlist"

        _cancel(client, event["id"], a)

        detail = client.get(f"/events/{event['id']}", headers=c).json()
        assert detail["goingCount"] == 1
        assert detail["rsvpStatus"] == "waitlist"
        assert [w["email"] for w in detail["waitlist"]] == ["member2@example.com"]


class TestWaitlistPromotion:
    """WAITLIST_AUTO_PROMOTE fills freed slots in arrival order."""

    def test_earliest_waitlisted_is_promoted(self, client, alice, monkeypatch):
        monkeypatch.setattr(settings, "WAITLIST_AUTO_PROMOTE", True)
        a, b, c, d = _users(4)
        event = create_test_event(client, alice, capacity=2)
        for headers in (a, b, c, d):
            register(client, event["id"], headers)

        _cancel(client, event["id"], a)

        detail = client.get(f"/events/{event['id']}", headers=alice).json()
        assert detail["goingCount"] == 2
        assert [g["email"] for g in detail["attendees"]] == ["member1@example.com", "member2@example.com"]
        assert [w["email"] for w in detail["waitlist"]] == ["member3@example.com"]

    def test_cancelling_waitlisted_promotes_nobody(self, client, alice, monkeypatch):
        monkeypatch.setattr(settings, "WAITLIST_AUTO_PROMOTE", True)
        a, b, c = _users(3)
        event = create_test_event(client, alice, capacity=1)
        for headers in (a, b, c):
            register(client, event["id"], headers)

        _cancel(client, event["id"], b)

        detail = client.get(f"/events/{event['id']}", headers=alice).json()
        assert [g["email"] for g in detail["attendees"]] == ["member0@example.com"]
        assert [w["email"] for w in detail["waitlist"]] == ["member2@example.com"]


class TestAttendeeSummary:
    """Service-level read model."""

    def test_empty_event(self, client, alice, db):
        event = create_test_event(client, alice)
        summary = rsvp_service.attendee_summary(db, event["id"])
        assert summary["going"] == []
        assert summary["waitlist"] == []
        assert summary["going_count"] == 0
        assert summary["rsvp_status"] is None
        assert summary["is_registered"] is False

    def test_going_in_arrival_order(self, client, alice, db):
        event = create_test_event(client, alice, capacity=2)
        users = _users(3)
        for headers in users:
            register(client, event["id"], headers)

        caller = db.query(User).filter(User.email == "member2@example.com").one()
        summary = rsvp_service.attendee_summary(db, event["id"], caller.id)
        assert [a["email"] for a in summary["going"]] == ["member0@example.com", "member1@example.com"]
        assert summary["rsvp_status"] == RSVPStatus.waitlist
        assert summary["is_registered"] is True


class TestConcurrentRegistration:
    """Two registrations racing for the last slot on separate connections."""

    @pytest.fixture(params=["sqlite", "postgresql"])
    def race_engine(self, request, tmp_path):
        if request.param == "sqlite":
            engine = create_engine(
                f"sqlite:///{tmp_path / 'race.db'}",
                connect_args={"check_same_thread": False},
            )
        else:
            url = os.environ.get("TEST_POSTGRES_URL")
            if not url:
                pytest.skip("TEST_POSTGRES_URL not set")
            pytest.importorskip("psycopg2")
            engine = create_engine(url)
        Base.metadata.create_all(bind=engine)
        yield engine
        Base.metadata.drop_all(bind=engine)
        engine.dispose()

    def test_last_slot_goes_to_one_registrant(self, race_engine, monkeypatch):
        Session = sessionmaker(autocommit=False, autoflush=False, bind=race_engine)
        with Session() as setup:
            owner = User(email="owner@example.com", name="Owner")
            racers = [User(email=f"racer{i}@example.com", name=f"Racer {i}") for i in range(2)]
            setup.add_all([owner, *racers])
            setup.flush()
            event = Event(
                title="Last seat",
                starts_at=datetime(2030, 1, 15, 12, 0),
                capacity=1,
                created_by=owner.id,
            )
            setup.add(event)
            setup.commit()
            event_id = event.id
            racer_ids = [u.id for u in racers]

        # Hold each registration between its count and its write
        decide = rsvp_service.admission_status

        def slow_decision(db, event, user_id):
            decision = decide(db, event, user_id)
            time.sleep(0.3)
            return decision

        monkeypatch.setattr(rsvp_service, "admission_status", slow_decision)

        start = threading.Barrier(2)
        errors = []

        def attempt(user_id):
            with Session() as db:
                start.wait()
                try:
                    rsvp_service.register(db, event_id=event_id, user_id=user_id)
                except Exception as exc:
                    errors.append(exc)

        threads = [threading.Thread(target=attempt, args=(uid,)) for uid in racer_ids]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert errors == []
        with Session() as check:
            rows = check.query(Rsvp).filter(Rsvp.event_id == event_id).all()
            statuses = sorted(r.status.value for r in rows)
        assert statuses == ["going", "waitlist"]

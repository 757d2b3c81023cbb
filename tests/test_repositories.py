"""Integration tests for the SQLAlchemy repositories (aiosqlite)"""
import asyncio
from datetime import timedelta

import pytest
import pytest_asyncio

from helpdesk_triage.assignment.infrastructure import SQLAlchemyTechnicianRepository, TechnicianModel
from helpdesk_triage.config import AlertType, Level, SLAType, TicketStatus
from helpdesk_triage.core import ResourceNotFoundException
from helpdesk_triage.infrastructure.database import Database
from helpdesk_triage.infrastructure.database.models import TicketModel
from helpdesk_triage.shared.infrastructure.config_source import StaticConfigSource
from helpdesk_triage.sla.application import SlaService
from helpdesk_triage.sla.domain import AlertRecord, SlaCalculator
from helpdesk_triage.sla.infrastructure import (
    AlertRecordModel,
    SQLAlchemyAlertRecordRepository,
    SQLAlchemySlaTrackingRepository,
)
from helpdesk_triage.triage.infrastructure import SQLAlchemySimilarTicketSource

HARDWARE = 7
RED = 9


def minutes(value: int) -> timedelta:
    return timedelta(minutes=value)


@pytest_asyncio.fixture
async def database(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'helpdesk.db'}")
    await db.create_tables()
    yield db
    await db.dispose()


async def add_ticket(database, ticket_id, now, status=TicketStatus.NEW, **fields):
    values = dict(
        id=ticket_id,
        code=f"TCK-{ticket_id}",
        title=f"Ticket {ticket_id}",
        description="",
        status_id=int(status),
        created_at=now,
    )
    values.update(fields)
    async with database.session() as session:
        session.add(TicketModel(**values))


class TestSlaTrackingRepository:
    @pytest.mark.asyncio
    async def test_add_and_get(self, database, sla_matrix, now):
        await add_ticket(database, 1, now)
        repository = SQLAlchemySlaTrackingRepository(database)
        tracking = SlaCalculator(sla_matrix).compute(Level.HIGH, Level.HIGH, now).for_ticket(1)

        await repository.add(tracking)
        loaded = await repository.get(1)

        assert loaded == tracking
        assert loaded.limit_response.tzinfo is not None

    @pytest.mark.asyncio
    async def test_record_transition(self, database, sla_matrix, now):
        await add_ticket(database, 1, now)
        repository = SQLAlchemySlaTrackingRepository(database)
        tracking = SlaCalculator(sla_matrix).compute(Level.HIGH, Level.HIGH, now).for_ticket(1)
        await repository.add(tracking)

        stored = await repository.record_transition(
            tracking.record_first_response(now + minutes(30)), SLAType.RESPONSE
        )
        loaded = await repository.get(1)

        assert stored is True
        assert loaded.actual_response_time == now + minutes(30)
        assert loaded.response_met is True
        assert loaded.limit_response == tracking.limit_response

    @pytest.mark.asyncio
    async def test_stopped_clock_is_not_overwritten(self, database, sla_matrix, now):
        await add_ticket(database, 1, now)
        repository = SQLAlchemySlaTrackingRepository(database)
        tracking = SlaCalculator(sla_matrix).compute(Level.HIGH, Level.HIGH, now).for_ticket(1)
        await repository.add(tracking)

        first = await repository.record_transition(
            tracking.record_first_response(now + minutes(10)), SLAType.RESPONSE
        )
        # built from the same pending snapshot, as a concurrent caller would
        second = await repository.record_transition(
            tracking.record_first_response(now + minutes(90)), SLAType.RESPONSE
        )
        loaded = await repository.get(1)

        assert (first, second) == (True, False)
        assert loaded.actual_response_time == now + minutes(10)
        assert loaded.response_met is True

    @pytest.mark.asyncio
    async def test_transition_of_untracked_ticket(self, database, sla_matrix, now):
        repository = SQLAlchemySlaTrackingRepository(database)
        tracking = SlaCalculator(sla_matrix).compute(Level.HIGH, Level.HIGH, now).for_ticket(5)

        with pytest.raises(ResourceNotFoundException):
            await repository.record_transition(tracking.record_resolution(now), SLAType.RESOLUTION)

    @pytest.mark.asyncio
    async def test_overlapping_transitions_keep_both_clocks(self, database, sla_matrix, now):
        class SlowResponseRepository(SQLAlchemySlaTrackingRepository):
            async def record_transition(self, tracking, sla_type):
                if sla_type == SLAType.RESPONSE:
                    await asyncio.sleep(0.1)
                return await super().record_transition(tracking, sla_type)

        await add_ticket(database, 1, now)
        repository = SlowResponseRepository(database)
        service = SlaService(StaticConfigSource(sla_matrix), repository)
        await service.start_tracking(1, Level.HIGH, Level.HIGH, now)

        await asyncio.gather(
            service.on_first_response(1, now + minutes(10)),
            service.on_resolution(1, now + minutes(500)),
        )
        loaded = await repository.get(1)

        assert loaded.actual_response_time == now + minutes(10)
        assert loaded.response_met is True
        assert loaded.actual_resolution_time == now + minutes(500)
        assert loaded.resolution_met is False

    @pytest.mark.asyncio
    async def test_overlapping_first_responses_write_once(self, database, sla_matrix, now):
        class SlowRepository(SQLAlchemySlaTrackingRepository):
            async def record_transition(self, tracking, sla_type):
                await asyncio.sleep(0.05)
                return await super().record_transition(tracking, sla_type)

        await add_ticket(database, 1, now)
        repository = SlowRepository(database)
        service = SlaService(StaticConfigSource(sla_matrix), repository)
        await service.start_tracking(1, Level.HIGH, Level.HIGH, now)

        early, late = await asyncio.gather(
            service.on_first_response(1, now + minutes(10)),
            service.on_first_response(1, now + minutes(90)),
        )
        loaded = await repository.get(1)

        assert early == late == loaded
        assert loaded.actual_response_time in (now + minutes(10), now + minutes(90))
        assert loaded.response_met is (loaded.actual_response_time <= loaded.limit_response)

    @pytest.mark.asyncio
    async def test_get_missing(self, database):
        assert await SQLAlchemySlaTrackingRepository(database).get(404) is None

    @pytest.mark.asyncio
    async def test_list_monitored(self, database, sla_matrix, now):
        repository = SQLAlchemySlaTrackingRepository(database)
        calculator = SlaCalculator(sla_matrix)

        await add_ticket(database, 1, now)
        await add_ticket(database, 2, now, status=TicketStatus.CLOSED)
        await add_ticket(database, 3, now)
        await add_ticket(database, 4, now, assigned_technician_id=8)
        await repository.add(calculator.compute(Level.HIGH, Level.HIGH, now).for_ticket(1))
        await repository.add(calculator.compute(Level.HIGH, Level.HIGH, now).for_ticket(2))
        # not yet at its threshold
        await repository.add(calculator.compute(Level.LOW, Level.LOW, now).for_ticket(3))
        responded = calculator.compute(Level.HIGH, Level.HIGH, now).for_ticket(4)
        await repository.add(responded.record_first_response(now + minutes(5)))

        monitored = await repository.list_monitored(now + minutes(50))

        assert [t.ticket_id for t in monitored] == [1]
        assert monitored[0].status == TicketStatus.NEW
        assert monitored[0].code == "TCK-1"


class TestAlertRecordRepository:
    @pytest.mark.asyncio
    async def test_exists_since(self, database, now):
        await add_ticket(database, 1, now)
        repository = SQLAlchemyAlertRecordRepository(database)

        stored = await repository.add(AlertRecord(
            ticket_id=1,
            alert_type=AlertType.RESPONSE_NEAR,
            created_at=now,
            deadline=now + minutes(15),
            notified=True,
        ))

        assert stored.id is not None
        assert await repository.exists_since(1, AlertType.RESPONSE_NEAR, now - minutes(120))
        assert await repository.exists_since(1, AlertType.RESPONSE_NEAR, now)
        assert not await repository.exists_since(1, AlertType.RESPONSE_NEAR, now + minutes(1))
        assert not await repository.exists_since(1, AlertType.RESPONSE_BREACHED, now - minutes(120))
        assert not await repository.exists_since(2, AlertType.RESPONSE_NEAR, now - minutes(120))

    @pytest.mark.asyncio
    async def test_mark_notified(self, database, now):
        await add_ticket(database, 1, now)
        repository = SQLAlchemyAlertRecordRepository(database)
        stored = await repository.add(AlertRecord(
            ticket_id=1,
            alert_type=AlertType.RESPONSE_BREACHED,
            created_at=now,
            deadline=now,
        ))

        await repository.mark_notified(stored.id)

        async with database.session() as session:
            model = await session.get(AlertRecordModel, stored.id)
            assert stored.notified is False
            assert model.notified is True


class TestTechnicianRepository:
    @pytest_asyncio.fixture
    async def repository(self, database):
        async with database.session() as session:
            session.add_all([
                TechnicianModel(id=1, name="Ana", specialties=[HARDWARE], current_load=0, max_tickets=2),
                TechnicianModel(id=2, name="Luis", specialties=[], current_load=3, max_tickets=3),
                TechnicianModel(id=3, name="Marta", specialties=[RED], current_load=0, max_tickets=5),
                TechnicianModel(id=4, name="Pablo", specialties=[], current_load=0, max_tickets=5, available=False),
                TechnicianModel(id=5, name="Rosa", specialties=[], current_load=1, max_tickets=5, active=False),
                TechnicianModel(id=6, name="Sergio", specialties=[], current_load=1, max_tickets=4),
            ])
        return SQLAlchemyTechnicianRepository(database)

    @pytest.mark.asyncio
    async def test_find_candidates(self, repository):
        candidates = await repository.find_candidates(HARDWARE)

        assert [c.id for c in candidates] == [1, 6]
        assert candidates[0].specialties == frozenset({HARDWARE})

    @pytest.mark.asyncio
    async def test_reservation_stops_at_capacity(self, repository):
        assert await repository.try_reserve(1) is True
        assert await repository.try_reserve(1) is True
        assert await repository.try_reserve(1) is False

        assert [c.id for c in await repository.find_candidates(HARDWARE)] == [6]

    @pytest.mark.asyncio
    async def test_unavailable_technician_cannot_be_reserved(self, repository):
        assert await repository.try_reserve(4) is False

    @pytest.mark.asyncio
    async def test_reservations_never_exceed_capacity(self, repository, database):
        results = [await repository.try_reserve(1) for _ in range(5)]

        assert sum(results) == 2
        async with database.session() as session:
            technician = await session.get(TechnicianModel, 1)
            assert technician.current_load == technician.max_tickets

    @pytest.mark.asyncio
    async def test_release_floors_at_zero(self, repository):
        await repository.release(3)
        await repository.release(6)
        await repository.release(6)

        candidates = {c.id: c for c in await repository.find_candidates(RED)}
        assert candidates[3].current_load == 0
        assert candidates[6].current_load == 0

    @pytest.mark.asyncio
    async def test_performance(self, repository, database, sla_matrix, now):
        trackings = SQLAlchemySlaTrackingRepository(database)
        calculator = SlaCalculator(sla_matrix)

        await add_ticket(database, 10, now, category_id=HARDWARE, assigned_technician_id=1, satisfaction_score=4.0)
        await add_ticket(database, 11, now, category_id=HARDWARE, assigned_technician_id=1, satisfaction_score=5.0)
        await add_ticket(database, 12, now - timedelta(days=200), category_id=HARDWARE, assigned_technician_id=1)
        await add_ticket(database, 13, now, category_id=RED, assigned_technician_id=1)
        met = calculator.compute(Level.HIGH, Level.HIGH, now).for_ticket(10)
        missed = calculator.compute(Level.HIGH, Level.HIGH, now).for_ticket(11)
        await trackings.add(met.record_resolution(now + minutes(100)))
        await trackings.add(missed.record_resolution(now + minutes(1000)))

        history = await repository.performance([1, 6], HARDWARE, now - timedelta(days=90))

        assert set(history) == {1}
        assert history[1].tickets == 2
        assert history[1].sla_compliance == pytest.approx(50.0)
        assert history[1].satisfaction == pytest.approx(4.5)

    @pytest.mark.asyncio
    async def test_performance_without_ids(self, repository, now):
        assert await repository.performance([], HARDWARE, now) == {}


class TestSimilarTicketSource:
    @pytest.mark.asyncio
    async def test_recent_resolved(self, database, now):
        await add_ticket(database, 1, now, category_id=HARDWARE, status=TicketStatus.RESOLVED,
                         resolved_at=now + minutes(10), title="Impresora atascada")
        await add_ticket(database, 2, now, category_id=HARDWARE, status=TicketStatus.CLOSED,
                         resolved_at=now + minutes(20))
        await add_ticket(database, 3, now, category_id=HARDWARE, status=TicketStatus.IN_PROGRESS)
        await add_ticket(database, 4, now, category_id=RED, status=TicketStatus.RESOLVED,
                         resolved_at=now + minutes(30))

        tickets = await SQLAlchemySimilarTicketSource(database).recent_resolved(HARDWARE, 10)

        assert [t.id for t in tickets] == [2, 1]
        assert tickets[1].title == "Impresora atascada"
        assert tickets[1].resolved_at == now + minutes(10)

    @pytest.mark.asyncio
    async def test_limit(self, database, now):
        for ticket_id in range(1, 5):
            await add_ticket(database, ticket_id, now, category_id=HARDWARE, status=TicketStatus.RESOLVED,
                             resolved_at=now + minutes(ticket_id))

        tickets = await SQLAlchemySimilarTicketSource(database).recent_resolved(HARDWARE, 2)

        assert [t.id for t in tickets] == [4, 3]

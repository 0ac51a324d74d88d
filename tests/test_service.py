"""Tests for QuestService — proves the facade enforces setup, authority and ledger rules."""

import pytest

from questledger.errors import ErrorKind
from questledger.issuer.recording import RecordingRewardIssuer
from questledger.models.quest import UserQuestStatus
from questledger.persistence.event_log import EventKind
from questledger.service import QuestService


AUTHORITY = "authority"
ISSUER_ADDRESS = "0x" + "11" * 20


@pytest.fixture
def issuer() -> RecordingRewardIssuer:
    return RecordingRewardIssuer(address=ISSUER_ADDRESS)


@pytest.fixture
def fresh(issuer: RecordingRewardIssuer) -> QuestService:
    return QuestService(lambda address: issuer)


@pytest.fixture
def service(fresh: QuestService) -> QuestService:
    result = fresh.initialize(AUTHORITY, ISSUER_ADDRESS)
    assert result.success
    return fresh


class TestInitialize:
    def test_initialize_sets_authority_and_seeds(self, fresh: QuestService) -> None:
        result = fresh.initialize(AUTHORITY, ISSUER_ADDRESS)
        assert result.success
        assert fresh.is_initialized
        assert fresh.authority == AUTHORITY
        assert fresh.issuer_address == ISSUER_ADDRESS
        assert fresh.reward_for(1001) == 50
        assert fresh.reward_for(1002) == 101
        assert result.data["quests"] == [
            {"quest_id": 1001, "reward_token_id": 50},
            {"quest_id": 1002, "reward_token_id": 101},
        ]

    def test_initialize_emits_event(self, fresh: QuestService) -> None:
        fresh.initialize(AUTHORITY, ISSUER_ADDRESS)
        events = fresh.events(EventKind.INITIALIZED)
        assert len(events) == 1
        assert events[0].payload == {
            "authority": AUTHORITY, "issuer_address": ISSUER_ADDRESS,
        }

    def test_second_initialize_fails(self, service: QuestService) -> None:
        result = service.initialize("mallory", "0x" + "22" * 20)
        assert not result.success
        assert result.error_kind == ErrorKind.ALREADY_INITIALIZED
        assert service.authority == AUTHORITY
        assert service.issuer_address == ISSUER_ADDRESS
        assert service.reward_for(1001) == 50
        assert len(service.events(EventKind.INITIALIZED)) == 1

    @pytest.mark.parametrize("address", ["", "   ", "0x0", "0x" + "0" * 40])
    def test_invalid_issuer_address(self, fresh: QuestService, address: str) -> None:
        result = fresh.initialize(AUTHORITY, address)
        assert not result.success
        assert result.error_kind == ErrorKind.INVALID_ADDRESS
        assert not fresh.is_initialized
        assert fresh.reward_for(1001) is None
        assert fresh.events() == []

    def test_initialize_after_invalid_attempt(self, fresh: QuestService) -> None:
        assert not fresh.initialize(AUTHORITY, "").success
        assert fresh.initialize(AUTHORITY, ISSUER_ADDRESS).success

    def test_issuer_bound_to_recorded_address(self) -> None:
        bound = []

        def factory(address: str) -> RecordingRewardIssuer:
            bound.append(address)
            return RecordingRewardIssuer(address=address)

        service = QuestService(factory)
        service.initialize(AUTHORITY, ISSUER_ADDRESS)
        assert bound == [ISSUER_ADDRESS]


class TestUninitialized:
    def test_mark_complete_fails(self, fresh: QuestService) -> None:
        result = fresh.mark_complete(AUTHORITY, "alice", 1001)
        assert not result.success
        assert result.error_kind == ErrorKind.NOT_INITIALIZED

    def test_claim_fails(self, fresh: QuestService) -> None:
        result = fresh.claim("alice", 1001)
        assert not result.success
        assert result.error_kind == ErrorKind.NOT_INITIALIZED

    def test_register_quest_fails(self, fresh: QuestService) -> None:
        result = fresh.register_quest(AUTHORITY, 3001, 7)
        assert not result.success
        assert result.error_kind == ErrorKind.NOT_INITIALIZED

    def test_reads_return_defaults(self, fresh: QuestService) -> None:
        assert fresh.reward_for(1001) is None
        assert not fresh.is_completed("alice", 1001)
        assert not fresh.is_claimed("alice", 1001)
        assert fresh.authority is None


class TestMarkComplete:
    def test_authority_marks_completion(self, service: QuestService) -> None:
        result = service.mark_complete(AUTHORITY, "alice", 1001)
        assert result.success
        assert result.data["already_completed"] is False
        assert service.is_completed("alice", 1001)
        assert not service.is_claimed("alice", 1001)

    def test_non_authority_rejected(self, service: QuestService) -> None:
        result = service.mark_complete("mallory", "alice", 1001)
        assert not result.success
        assert result.error_kind == ErrorKind.UNAUTHORIZED
        assert not service.is_completed("alice", 1001)
        assert service.events(EventKind.QUEST_COMPLETED) == []

    def test_user_cannot_self_certify(self, service: QuestService) -> None:
        result = service.mark_complete("alice", "alice", 1001)
        assert result.error_kind == ErrorKind.UNAUTHORIZED
        assert not service.is_completed("alice", 1001)

    def test_unknown_quest_rejected(self, service: QuestService) -> None:
        result = service.mark_complete(AUTHORITY, "alice", 9999)
        assert not result.success
        assert result.error_kind == ErrorKind.INVALID_QUEST
        assert not service.is_completed("alice", 9999)

    def test_blank_user_rejected(self, service: QuestService) -> None:
        result = service.mark_complete(AUTHORITY, "  ", 1001)
        assert result.error_kind == ErrorKind.INVALID_ADDRESS

    def test_idempotent_without_duplicate_event(self, service: QuestService) -> None:
        first = service.mark_complete(AUTHORITY, "alice", 1001)
        second = service.mark_complete(AUTHORITY, "alice", 1001)
        assert first.success and second.success
        assert second.data["already_completed"] is True
        assert service.is_completed("alice", 1001)
        events = service.events(EventKind.QUEST_COMPLETED)
        assert len(events) == 1
        assert events[0].payload == {"user": "alice", "quest_id": 1001}


class TestClaim:
    def test_happy_path(
        self, service: QuestService, issuer: RecordingRewardIssuer,
    ) -> None:
        service.mark_complete(AUTHORITY, "alice", 1001)
        assert service.is_completed("alice", 1001)

        result = service.claim("alice", 1001)
        assert result.success
        assert result.data == {"user": "alice", "quest_id": 1001, "reward_token_id": 50}

        assert [(m.recipient, m.token_id) for m in issuer.mints] == [("alice", 50)]
        events = service.events(EventKind.REWARD_CLAIMED)
        assert len(events) == 1
        assert events[0].payload == {"user": "alice", "quest_id": 1001, "token_id": 50}
        assert service.is_claimed("alice", 1001)
        assert service.status("alice", 1001) == UserQuestStatus(
            user="alice", quest_id=1001, completed=True, claimed=True,
        )

    def test_claim_before_completion(
        self, service: QuestService, issuer: RecordingRewardIssuer,
    ) -> None:
        result = service.claim("bob", 1001)
        assert not result.success
        assert result.error_kind == ErrorKind.QUEST_NOT_COMPLETED
        assert not service.is_claimed("bob", 1001)
        assert issuer.mints == []

    def test_claim_unknown_quest(self, service: QuestService) -> None:
        result = service.claim("alice", 9999)
        assert result.error_kind == ErrorKind.INVALID_QUEST

    def test_exactly_once(
        self, service: QuestService, issuer: RecordingRewardIssuer,
    ) -> None:
        service.mark_complete(AUTHORITY, "alice", 1001)
        assert service.claim("alice", 1001).success
        for _ in range(3):
            result = service.claim("alice", 1001)
            assert not result.success
            assert result.error_kind == ErrorKind.ALREADY_CLAIMED
        assert len(issuer.mints) == 1
        assert len(service.events(EventKind.REWARD_CLAIMED)) == 1
        assert service.status("alice", 1001).completed
        assert service.status("alice", 1001).claimed

    def test_completion_for_other_user_does_not_entitle(
        self, service: QuestService,
    ) -> None:
        service.mark_complete(AUTHORITY, "alice", 1001)
        result = service.claim("bob", 1001)
        assert result.error_kind == ErrorKind.QUEST_NOT_COMPLETED

    def test_quests_are_claimed_independently(
        self, service: QuestService, issuer: RecordingRewardIssuer,
    ) -> None:
        service.mark_complete(AUTHORITY, "alice", 1001)
        service.mark_complete(AUTHORITY, "alice", 1002)
        assert service.claim("alice", 1001).success
        assert service.claim("alice", 1002).success
        assert [m.token_id for m in issuer.mints] == [50, 101]

    def test_reads_normalize_identity_like_writes(self, service: QuestService) -> None:
        service.mark_complete(AUTHORITY, " alice", 1001)
        assert service.claim(" alice ", 1001).success
        assert service.is_completed(" alice", 1001)
        assert service.is_claimed(" alice", 1001)
        assert service.is_claimed("alice", 1001)
        assert service.status("alice ", 1001) == UserQuestStatus(
            user="alice", quest_id=1001, completed=True, claimed=True,
        )

    def test_issuer_failure_reports_issuance_failed(
        self, service: QuestService, issuer: RecordingRewardIssuer,
    ) -> None:
        service.mark_complete(AUTHORITY, "alice", 1001)
        issuer.fail_next("supply exhausted")
        result = service.claim("alice", 1001)
        assert result.error_kind == ErrorKind.ISSUANCE_FAILED
        assert result.errors == ["Reward issuance failed: supply exhausted"]


class TestRegisterQuest:
    def test_authority_registers(self, service: QuestService) -> None:
        result = service.register_quest(AUTHORITY, 3001, 7)
        assert result.success
        assert service.reward_for(3001) == 7
        assert len(service.events(EventKind.QUEST_REGISTERED)) == 1

    def test_non_authority_rejected(self, service: QuestService) -> None:
        result = service.register_quest("mallory", 3001, 7)
        assert result.error_kind == ErrorKind.UNAUTHORIZED
        assert service.reward_for(3001) is None

    def test_zero_reward_rejected(self, service: QuestService) -> None:
        result = service.register_quest(AUTHORITY, 3001, 0)
        assert result.error_kind == ErrorKind.INVALID_QUEST
        assert service.reward_for(3001) is None

    def test_seeded_quest_cannot_be_redefined(self, service: QuestService) -> None:
        result = service.register_quest(AUTHORITY, 1001, 999)
        assert result.error_kind == ErrorKind.INVALID_QUEST
        assert service.reward_for(1001) == 50

    def test_registered_quest_is_claimable(
        self, service: QuestService, issuer: RecordingRewardIssuer,
    ) -> None:
        service.register_quest(AUTHORITY, 3001, 7)
        service.mark_complete(AUTHORITY, "carol", 3001)
        assert service.claim("carol", 3001).success
        assert issuer.mints[-1].token_id == 7


class TestSummary:
    def test_summary_counts(self, service: QuestService) -> None:
        service.mark_complete(AUTHORITY, "alice", 1001)
        service.claim("alice", 1001)
        summary = service.summary()
        assert summary["initialized"] is True
        assert summary["quests"] == {"1001": 50, "1002": 101}
        assert summary["completions"] == 1
        assert summary["claims"] == 1
        assert summary["events"] == 3
        assert summary["persistence_degraded"] is False

    def test_event_ids_monotonic(self, service: QuestService) -> None:
        service.mark_complete(AUTHORITY, "alice", 1001)
        service.claim("alice", 1001)
        ids = [e.event_id for e in service.events()]
        assert ids == ["EVT-00000001", "EVT-00000002", "EVT-00000003"]

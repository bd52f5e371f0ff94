"""Tests for composite state projection."""

from datetime import timedelta

from touchpoint.config.models.projection import ProjectionConfig
from touchpoint.extraction import EntityExtractor
from touchpoint.facts import FactType, InMemoryFactStore
from touchpoint.state import RoamingStatus, StateProjector, project_state
from tests.factories import T0, USER_ID, BusinessEventFactory, ConversationFactory, FactFactory


class TestProjectState:
    """Tests for project_state."""

    def test_defaults_without_facts(self) -> None:
        """Should fall back to the configured defaults."""
        state = project_state(USER_ID, [])

        assert state.user_id == USER_ID
        assert state.home_market == "Singapore"
        assert state.current_country == "Singapore"
        assert state.active_plan == "Standard Plan"
        assert state.active_msisdn == "+65XXXXXXXX"
        assert state.roaming_status == RoamingStatus.DISABLED
        assert state.open_support_issue is None
        assert state.last_transaction is None
        assert state.personal_context is None

    def test_configured_home_market(self) -> None:
        """Should use the configured home market as default country."""
        state = project_state(USER_ID, [], ProjectionConfig(home_market="Malaysia"))
        assert state.current_country == "Malaysia"

    def test_expired_facts_ignored(self) -> None:
        """Should read active facts only."""
        facts = [
            FactFactory.create(fact_type="USER_IN_COUNTRY", value="Japan", valid_to=T0),
        ]
        assert project_state(USER_ID, facts).current_country == "Singapore"

    def test_telecom_fields(self) -> None:
        """Should map each telecom predicate onto its field."""
        facts = [
            FactFactory.create(fact_type="USER_IN_COUNTRY", value="Japan"),
            FactFactory.create(fact_type="ACTIVE_PLAN", value="20GB Plan"),
            FactFactory.create(fact_type="ACTIVE_MSISDN", value="+6591234567"),
            FactFactory.create(fact_type="ROAMING_STATUS", value="Enabled"),
            FactFactory.create(fact_type="HAS_OPEN_ISSUE", value="Billing Dispute"),
            FactFactory.create(
                fact_type="COMPLETED_TRANSACTION",
                value={"type": "SIM_TOP_UP", "amount": 20, "currency": "SGD",
                       "timestamp": T0.isoformat()},
            ),
        ]
        state = project_state(USER_ID, facts)

        assert state.current_country == "Japan"
        assert state.active_plan == "20GB Plan"
        assert state.active_msisdn == "+6591234567"
        assert state.is_roaming
        assert state.open_support_issue == "Billing Dispute"
        assert state.last_transaction is not None
        assert state.last_transaction.amount == 20
        assert state.last_transaction.timestamp == T0

    def test_boolean_roaming_value(self) -> None:
        """Should read boolean roaming facts."""
        facts = [FactFactory.create(fact_type="ROAMING_STATUS", value=False)]
        assert project_state(USER_ID, facts).roaming_status == RoamingStatus.DISABLED

    def test_plain_transaction_value(self) -> None:
        """Should build a transaction from a bare string value."""
        facts = [FactFactory.create(fact_type="COMPLETED_TRANSACTION", value="SIM_TOP_UP")]
        transaction = project_state(USER_ID, facts).last_transaction

        assert transaction is not None
        assert transaction.type == "SIM_TOP_UP"
        assert transaction.timestamp == T0

    def test_personal_context(self) -> None:
        """Should collect personal predicates into the personal context."""
        facts = [
            FactFactory.create(fact_type="HAS_PET", value={"name": "Mochi", "species": "cat"}),
            FactFactory.create(
                fact_type="HAS_RELATIONSHIP:Mom",
                value={"name": "Mom", "relationship_type": "parent", "location": "Osaka"},
            ),
            FactFactory.create(
                fact_type="HAS_RELATIONSHIP:Grandma",
                value={"name": "Grandma", "relationship_type": "grandparent"},
                valid_from=T0 + timedelta(minutes=1),
            ),
            FactFactory.create(
                fact_type="EMOTIONAL_STATE", value={"mood": "stressed", "stress_level": 7}
            ),
        ]
        context = project_state(USER_ID, facts).personal_context

        assert context is not None
        assert context.pet is not None
        assert context.pet.name == "Mochi"
        assert [r.name for r in context.relationships] == ["Mom", "Grandma"]
        assert context.emotional_state is not None
        assert context.emotional_state.stress_level == 7
        assert context.interests == []

    def test_unreadable_personal_value_skipped(self) -> None:
        """Should skip a personal fact whose value has the wrong shape."""
        facts = [FactFactory.create(fact_type="HAS_PET", value="Mochi")]
        assert project_state(USER_ID, facts).personal_context is None

    def test_unknown_types_stay_history_only(self) -> None:
        """Should ignore fact types it does not project."""
        facts = [FactFactory.create(fact_type="PLAN_CHANGE", value="PLAN_CHANGE - 38 SGD")]
        assert project_state(USER_ID, facts) == project_state(USER_ID, [])

    def test_order_independent(self) -> None:
        """Should give the same state whatever order facts are passed in."""
        facts = [
            FactFactory.create(fact_type="HAS_INTEREST:Gaming",
                               value={"category": "hobby", "specific_interest": "Gaming"}),
            FactFactory.create(fact_type="HAS_INTEREST:Anime/Manga",
                               value={"category": "entertainment",
                                      "specific_interest": "Anime/Manga"}),
        ]
        assert project_state(USER_ID, facts) == project_state(USER_ID, list(reversed(facts)))


class TestStateProjector:
    """Tests for StateProjector over a store."""

    def test_projection_is_idempotent(self, store: InMemoryFactStore) -> None:
        """Should project an unchanged store to equal states."""
        extractor = EntityExtractor()
        store.insert_many(USER_ID, extractor.extract(BusinessEventFactory.roaming_top_up()).facts)
        store.insert_many(USER_ID, extractor.extract(ConversationFactory.mochi()).facts)
        projector = StateProjector(store)

        first = projector.project(USER_ID)
        second = projector.project(USER_ID)

        assert first == second
        assert first.current_country == "Japan"
        assert first.personal_context is not None

    def test_latest_fact_wins(self, store: InMemoryFactStore) -> None:
        """Should reflect the most recent fact of each type."""
        store.insert(USER_ID, FactFactory.create(fact_type=FactType.ACTIVE_PLAN, value="A"))
        store.insert(
            USER_ID,
            FactFactory.create(fact_type=FactType.ACTIVE_PLAN, value="B",
                               valid_from=T0 + timedelta(days=1)),
        )

        assert StateProjector(store).project(USER_ID).active_plan == "B"

    def test_unknown_scope(self, store: InMemoryFactStore) -> None:
        """Should project defaults for a scope with no facts."""
        state = StateProjector(store).project("usr_new")
        assert state.user_id == "usr_new"
        assert state.personal_context is None

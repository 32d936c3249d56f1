from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import inspect

from repayment_calc.data_models import FLAT, LoanTerms
from repayment_calc_web.scenario_store import SavedScenarioModel, ScenarioStore


def terms(principal="1000000", rate="12", term=12, **kwargs):
    return LoanTerms(Decimal(principal), Decimal(rate), term, **kwargs)


@pytest.fixture
def store(tmp_path):
    store = ScenarioStore(f"sqlite:///{tmp_path / 'store.sqlite3'}", max_per_user=2)
    yield store
    store.dispose()


class TestScenarioStore:
    def test_scenarios_are_kept_per_user(self, store) -> None:
        alice_id = store.add_scenario("alice", "Short", terms())
        bob_id = store.add_scenario("bob", "Long", terms(term=24))

        alice = store.list_scenarios("alice")
        assert [s["id"] for s in alice] == [alice_id]
        assert alice[0]["name"] == "Short"
        assert alice[0]["summary"]["monthly_payment"] == 88848.79
        assert [s["id"] for s in store.list_scenarios("bob")] == [bob_id]

    def test_summary_is_rebuilt_from_terms(self, store) -> None:
        store.add_scenario("alice", "Flat", terms("12000", "12", 12, interest_method=FLAT, start_date=date(2024, 1, 31)))
        summary = store.list_scenarios("alice")[0]["summary"]
        assert summary["interest_method"] == FLAT
        assert summary["total_repayment"] == 13440.0
        assert summary["first_due_date"] == "2024-02-29"

    def test_only_terms_are_stored(self, store) -> None:
        columns = {column.name for column in inspect(SavedScenarioModel).columns}
        assert "schedule_json" not in columns
        assert {"principal", "annual_rate_percent", "term_months", "interest_method", "start_date"} <= columns

    def test_decimal_terms_survive_storage(self, store) -> None:
        store.add_scenario("alice", "Precise", terms("1234.56", "7.125", 36))
        summary = store.list_scenarios("alice")[0]["summary"]
        assert summary["principal"] == 1234.56
        assert summary["annual_rate_percent"] == 7.125

    def test_missing_token_is_ignored(self, store) -> None:
        assert store.add_scenario("", "Nobody", terms()) is None
        assert store.list_scenarios("") == []
        assert store.list_scenarios(None) == []

    def test_trim_keeps_newest_per_user(self, store) -> None:
        for i in range(4):
            store.add_scenario("alice", f"S{i}", terms())
        assert [s["name"] for s in store.list_scenarios("alice")] == ["S2", "S3"]

    def test_cannot_remove_another_users_scenario(self, store) -> None:
        scenario_id = store.add_scenario("alice", "Mine", terms())
        store.remove_scenario("bob", scenario_id)
        assert len(store.list_scenarios("alice")) == 1
        store.remove_scenario("alice", str(scenario_id))
        assert store.list_scenarios("alice") == []

    def test_unparseable_id_is_ignored(self, store) -> None:
        store.add_scenario("alice", "Mine", terms())
        store.remove_scenario("alice", "not-a-number")
        store.remove_scenario("alice", None)
        assert len(store.list_scenarios("alice")) == 1

    def test_clear(self, store) -> None:
        store.add_scenario("alice", "One", terms())
        store.add_scenario("bob", "Two", terms())
        store.clear_scenarios("alice")
        assert store.list_scenarios("alice") == []
        assert len(store.list_scenarios("bob")) == 1

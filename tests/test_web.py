"""Tests for the Flask front end."""


def calculate(client, **overrides):
    form = {
        "principal": "1000000",
        "rate": "12",
        "term": "12",
        "interest_method": "reducing_balance",
        "currency": "KES",
        "action": "run",
    }
    form.update(overrides)
    return client.post("/calculator", data=form)


class TestCalculatorPage:
    def test_get_shows_default_preview(self, client) -> None:
        response = client.get("/")
        assert response.status_code == 200
        body = response.get_data(as_text=True)
        assert "Loan Repayment Calculator" in body
        assert "88,848.79" in body

    def test_post_renders_schedule(self, client) -> None:
        body = calculate(client, principal="50,000", rate="0", start_date="2024-01-15").get_data(as_text=True)
        assert "4,166.67" in body
        assert "2025-01-15" in body

    def test_invalid_input_shows_error(self, client) -> None:
        response = calculate(client, principal="0")
        assert response.status_code == 200
        body = response.get_data(as_text=True)
        assert "must be positive" in body
        assert "Amortization Schedule" not in body

    def test_non_numeric_term_shows_error(self, client) -> None:
        body = calculate(client, term="twelve").get_data(as_text=True)
        assert "Invalid term" in body

    def test_long_schedule_is_truncated(self, client) -> None:
        body = calculate(client, term="240").get_data(as_text=True)
        assert "120 more rows truncated" in body
        full = calculate(client, term="240", show_full_schedule="1").get_data(as_text=True)
        assert "truncated" not in full


    def test_rate_below_precision_is_calculated(self, client) -> None:
        response = calculate(client, principal="12000", rate="1e-27")
        assert response.status_code == 200
        assert "1,000.00" in response.get_data(as_text=True)

    def test_due_date_past_year_9999_shows_error(self, client) -> None:
        response = calculate(client, start_date="9999-06-01")
        assert response.status_code == 200
        assert "Amortization Schedule" not in response.get_data(as_text=True)


class TestSavedScenarios:
    def test_add_and_list(self, client) -> None:
        calculate(client, action="add_to_comparison", scenario_name="Twelve months")
        body = client.get("/").get_data(as_text=True)
        assert "Twelve months" in body

    def test_saved_summary_is_rebuilt_without_schedule(self, app, client) -> None:
        calculate(client, action="add_to_comparison", scenario_name="Year")
        with client.session_transaction() as sess:
            token = sess["user_token"]
        (scenario,) = app.extensions["scenario_store"].list_scenarios(token)
        assert scenario["summary"]["monthly_payment"] == 88848.79
        assert "schedule" not in scenario

    def test_scenarios_are_capped_per_user(self, app, client) -> None:
        for i in range(5):
            calculate(client, action="add_to_comparison", scenario_name=f"s{i}")
        with client.session_transaction() as sess:
            token = sess["user_token"]
        assert len(app.extensions["scenario_store"].list_scenarios(token)) == 3

    def test_remove_and_clear(self, app, client) -> None:
        calculate(client, action="add_to_comparison", scenario_name="first")
        calculate(client, action="add_to_comparison", scenario_name="second")
        with client.session_transaction() as sess:
            token = sess["user_token"]
        store = app.extensions["scenario_store"]
        first = store.list_scenarios(token)[0]

        response = client.post("/comparison/remove", data={"scenario_id": first["id"]})
        assert response.status_code == 302
        assert [s["name"] for s in store.list_scenarios(token)] == ["second"]

        client.post("/comparison/clear")
        assert store.list_scenarios(token) == []


class TestNewLoanPreview:
    def test_preview(self, client) -> None:
        response = client.post(
            "/api/loans/preview",
            json={"principalAmount": 1000000, "interestRate": 12, "termMonths": 12, "startDate": "2024-01-01"},
        )
        assert response.status_code == 200
        preview = response.get_json()["preview"]
        assert preview["summary"]["monthly_payment"] == 88848.79
        assert preview["draftLoanNumber"].startswith("LN-")
        assert len(preview["schedule"]) == 12
        assert preview["schedule"][0]["due_date"] == "2024-02-01"
        assert preview["schedule"][-1]["balance"] == 0.0

    def test_zero_rate(self, client) -> None:
        response = client.post("/api/loans/preview", json={"principalAmount": "50000", "interestRate": "0", "termMonths": "12"})
        summary = response.get_json()["preview"]["summary"]
        assert summary["monthly_payment"] == 4166.67
        assert summary["total_interest"] == 0.0

    def test_incomplete_form_gives_no_preview(self, client) -> None:
        response = client.post("/api/loans/preview", json={"principalAmount": "", "interestRate": 12, "termMonths": 12})
        assert response.status_code == 200
        assert response.get_json() == {"preview": None}

    def test_bad_start_date(self, client) -> None:
        response = client.post(
            "/api/loans/preview",
            json={"principalAmount": 1000, "interestRate": 12, "termMonths": 12, "startDate": "soon"},
        )
        assert response.status_code == 400


    def test_tiny_rate(self, client) -> None:
        response = client.post("/api/loans/preview", json={"principalAmount": 12000, "interestRate": "1e-27", "termMonths": 12})
        assert response.status_code == 200
        assert response.get_json()["preview"]["summary"]["monthly_payment"] == 1000.0

    def test_body_must_be_an_object(self, client) -> None:
        response = client.post("/api/loans/preview", json=[1, 2])
        assert response.status_code == 400
        assert "error" in response.get_json()

    def test_due_date_past_year_9999(self, client) -> None:
        response = client.post(
            "/api/loans/preview",
            json={"principalAmount": 1000, "interestRate": 12, "termMonths": 12, "startDate": "9999-06-01"},
        )
        assert response.status_code == 400

    def test_term_above_maximum_gives_no_preview(self, client) -> None:
        response = client.post(
            "/api/loans/preview", json={"principalAmount": 1000, "interestRate": 12, "termMonths": 100_000_000}
        )
        assert response.get_json() == {"preview": None}


class TestPortalPreview:
    def test_reducing_balance(self, client) -> None:
        response = client.post(
            "/api/portal/loans/preview",
            json={"amount": "100000", "interestRate": 12, "interestType": "REDUCING_BALANCE", "termMonths": "12"},
        )
        preview = response.get_json()["preview"]
        assert preview["monthlyPayment"] == 8884.88
        assert preview["totalInterest"] == 6618.55

    def test_flat(self, client) -> None:
        response = client.post(
            "/api/portal/loans/preview",
            json={"amount": 12000, "interestRate": 12, "interestType": "FLAT", "termMonths": 12},
        )
        preview = response.get_json()["preview"]
        assert preview["monthlyPayment"] == 1120.0
        assert preview["totalRepayment"] == 13440.0

    def test_unknown_interest_type(self, client) -> None:
        response = client.post(
            "/api/portal/loans/preview",
            json={"amount": 12000, "interestRate": 12, "interestType": "COMPOUND", "termMonths": 12},
        )
        assert response.status_code == 400

    def test_missing_amount_gives_no_preview(self, client) -> None:
        response = client.post("/api/portal/loans/preview", json={"interestRate": 12, "termMonths": 12})
        assert response.get_json() == {"preview": None}

    def test_body_must_be_an_object(self, client) -> None:
        response = client.post("/api/portal/loans/preview", json="12000")
        assert response.status_code == 400

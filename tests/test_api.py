"""
HTTP API tests.
"""

import pytest

from bazichart.create_chart import UNAVAILABLE_MESSAGE
from bazichart.llm import AI_UNAVAILABLE_MESSAGE

BIRTH = {
    "nickname": "Ah Boy",
    "gender": "male",
    "birthDate": "1990-01-01T00:00:00.000Z",
    "birthPlace": "Singapore",
}


def submit(client, **overrides):
    return client.post("/api/submit-birth-chart", json={**BIRTH, **overrides})


class TestSubmitBirthChart:

    def test_success(self, client, store):
        resp = submit(client)
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["preview"] == {
            "eightCharacters": "己巳 丙子 丙寅 戊子",
            "zodiac": "Snake",
            "dayMaster": "丙",
        }
        assert store.get(data["id"]).birth_info.nickname == "Ah Boy"

    def test_nickname_optional(self, client):
        body = {k: v for k, v in BIRTH.items() if k != "nickname"}
        assert client.post("/api/submit-birth-chart", json=body).status_code == 200

    @pytest.mark.parametrize("missing", ["gender", "birthDate", "birthPlace"])
    def test_missing_field(self, client, missing):
        body = {k: v for k, v in BIRTH.items() if k != missing}
        resp = client.post("/api/submit-birth-chart", json=body)
        assert resp.status_code == 400
        assert "error" in resp.json()

    def test_blank_place(self, client):
        assert submit(client, birthPlace="   ").status_code == 400

    def test_bad_gender(self, client):
        assert submit(client, gender="other").status_code == 400

    def test_unparseable_date(self, client):
        resp = submit(client, birthDate="sometime in spring")
        assert resp.status_code == 400

    def test_out_of_range_date(self, client):
        assert submit(client, birthDate="1800-01-01T00:00:00.000Z").status_code == 400

    def test_unknown_place_still_charts(self, client):
        resp = submit(client, birthPlace="Atlantis")
        assert resp.status_code == 200
        assert resp.json()["preview"]["eightCharacters"] == "己巳 丙子 丙寅 戊子"

    def test_calculation_failure_stores_nothing(self, client, store, monkeypatch):
        def broken(*args):
            raise RuntimeError("ephemeris files missing")

        monkeypatch.setattr("bazichart.create_chart.compute_chart", broken)
        resp = submit(client)
        assert resp.status_code == 500
        assert resp.json() == {"error": UNAVAILABLE_MESSAGE}
        assert len(store) == 0


class TestGetAnalysis:

    def test_flow(self, client):
        analysis_id = submit(client).json()["id"]
        resp = client.get("/api/get-analysis", params={"id": analysis_id})
        assert resp.status_code == 200
        data = resp.json()
        assert data["userInfo"]["birthPlace"] == "Singapore"
        assert data["mcpData"]["eightCharacters"] == "己巳 丙子 丙寅 戊子"
        assert data["fourPillars"]["day"] == {
            "heavenlyStem": "丙", "earthlyBranch": "寅", "element": "fire",
        }
        assert data["elements"]["fire"] == 50
        assert data["yinYang"] == {"yin": 25, "yang": 75}
        assert "Prosperity Star Pattern" in data["patterns"]

    def test_reads_are_stable(self, client):
        analysis_id = submit(client).json()["id"]
        first = client.get("/api/get-analysis", params={"id": analysis_id}).json()
        second = client.get("/api/get-analysis", params={"id": analysis_id}).json()
        assert first == second

    def test_missing_id(self, client):
        resp = client.get("/api/get-analysis")
        assert resp.status_code == 400

    def test_unknown_id(self, client):
        resp = client.get("/api/get-analysis", params={"id": "nope"})
        assert resp.status_code == 404
        assert resp.json() == {"error": "Analysis not found"}


class TestChat:

    def test_with_client_chart(self, client, fake_model):
        analysis = client.get("/api/get-analysis",
                              params={"id": submit(client).json()["id"]}).json()
        resp = client.post("/api/chat", json={
            "message": "What about my career?",
            "baziData": analysis,
            "history": [
                {"role": "user", "content": "Hi"},
                {"role": "assistant", "content": "Hello! Ask me about your chart."},
            ],
        })
        assert resp.status_code == 200
        assert resp.json() == {"response": fake_model.text}

        contents, kwargs = fake_model.calls[-1]
        assert [c["role"] for c in contents] == ["user", "model", "user"]
        assert "User Question: What about my career?" in contents[-1]["parts"][0]
        assert "己巳 丙子 丙寅 戊子" in contents[-1]["parts"][0]
        assert kwargs["generation_config"]["max_output_tokens"] == 500

    def test_with_bare_chart(self, client, sample_chart):
        resp = client.post("/api/chat", json={
            "message": "Hello", "baziData": sample_chart.to_dict(),
        })
        assert resp.status_code == 200

    def test_with_analysis_id(self, client, fake_model):
        analysis_id = submit(client).json()["id"]
        resp = client.post("/api/chat", json={"message": "Hello", "analysisId": analysis_id})
        assert resp.status_code == 200
        assert "丙寅" in fake_model.calls[-1][0][-1]["parts"][0]

    def test_unknown_analysis_id(self, client):
        resp = client.post("/api/chat", json={"message": "Hello", "analysisId": "nope"})
        assert resp.status_code == 404

    def test_no_chart(self, client, fake_model):
        resp = client.post("/api/chat", json={"message": "Hello"})
        assert resp.status_code == 400
        assert "BaZi data" in resp.json()["error"]
        assert fake_model.calls == []

    def test_invalid_chart(self, client, fake_model):
        resp = client.post("/api/chat", json={
            "message": "Hello",
            "baziData": {"mcpData": {"fourPillars": {"year": {"heavenlyStem": "?"}}}},
        })
        assert resp.status_code == 400
        assert fake_model.calls == []

    @pytest.mark.parametrize("key,value", [
        ("luckCycles", ["x"]),
        ("luckCycles", [{"age": "5"}]),
        ("deityStars", [1]),
        ("emptyBranches", [None]),
        ("solarCalendar", 1990),
    ])
    def test_malformed_chart_fields(self, client, fake_model, sample_chart, key, value):
        resp = client.post("/api/chat", json={
            "message": "Hello",
            "baziData": {**sample_chart.to_dict(), key: value},
        })
        assert resp.status_code == 400
        assert "Invalid BaZi data" in resp.json()["error"]
        assert fake_model.calls == []

    def test_empty_message(self, client, sample_chart):
        resp = client.post("/api/chat", json={"message": "", "baziData": sample_chart.to_dict()})
        assert resp.status_code == 400

    def test_ai_failure(self, make_client, failing_model, sample_chart):
        client = make_client(model=failing_model)
        resp = client.post("/api/chat", json={"message": "Hello", "baziData": sample_chart.to_dict()})
        assert resp.status_code == 500
        assert resp.json() == {"error": AI_UNAVAILABLE_MESSAGE}

    def test_no_api_key(self, make_client, sample_chart):
        client = make_client(model=None)
        resp = client.post("/api/chat", json={"message": "Hello", "baziData": sample_chart.to_dict()})
        assert resp.status_code == 500
        assert resp.json() == {"error": AI_UNAVAILABLE_MESSAGE}


def test_health(client):
    submit(client)
    assert client.get("/api/health").json() == {"status": "ok", "sessions": 1}

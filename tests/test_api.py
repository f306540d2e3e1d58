"""Endpoint tests for the board API using FastAPI's TestClient."""

import os

import pytest
from fastapi.testclient import TestClient

from mitre_board.config import VERSION
from mitre_board.core.board_context import BoardSettings, build_context
from mitre_board.server.app import create_app


class TestBoardApi:

    @pytest.fixture
    def client(self, board_context):
        return TestClient(create_app(board_context))

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "version": VERSION}

    def test_mitre_data(self, client):
        body = client.get("/api/mitre-data").json()

        assert [tactic["name"] for tactic in body["tactics"]] == ["Credential Access", "Defense Evasion"]
        assert "T1003.001" in body["techniquesById"]
        assert "TA0005" in body["tacticsById"]

    def test_rule_counts(self, client):
        assert client.get("/api/rule-counts").json() == {
            "TA0006": 1, "T1003": 1, "T1003.001": 1, "TA0005": 1, "T1055": 1
        }

    def test_rules_for_technique(self, client):
        response = client.get("/api/rules", params={"techniqueId": "T1003"})

        assert response.status_code == 200
        assert response.json() == [
            {"id": "A1", "title": "LSASS access", "description": "Detects reads of LSASS memory"}
        ]
        assert client.get("/api/rules", params={"techniqueId": "T0000"}).json() == []

    def test_rules_requires_technique_id(self, client):
        response = client.get("/api/rules")

        assert response.status_code == 400
        assert "techniqueId" in response.text

    def test_inactive_rules(self, client):
        body = client.get("/api/inactive-rules").json()

        assert [rule["id"] for rule in body] == ["I1", "I2", "I3", "I4"]
        assert body[3]["satisfies"] == {"tactics": 0, "techniques": 1, "subTechniques": 1}

    def test_gain_default_ranking(self, client):
        body = client.post("/api/inactive-rules/gain", json={}).json()

        assert [rule["id"] for rule in body["rules"]] == ["I4", "I2", "I1", "I3"]
        assert body["rules"][0]["gain"] == {"tactics": 0, "techniques": 1, "subTechniques": 1}
        assert body["rules"][-1]["isEffective"] is False

    def test_gain_with_selection(self, client):
        body = client.post("/api/inactive-rules/gain", json={
            "selectedRuleIds": ["I2"],
            "effectiveOnly": True,
        }).json()

        rules = {rule["id"]: rule for rule in body["rules"]}
        assert set(rules) == {"I1", "I4"}
        assert rules["I4"]["totalGain"] == 1
        assert body["currentCoverage"]["T1027"] == 1

    def test_gain_with_thresholds_and_sort(self, client):
        body = client.post("/api/inactive-rules/gain", json={
            "sortBy": "title",
            "thresholds": {"tactics": 0, "techniques": 1, "subTechniques": 0},
        }).json()

        # Only rules touching a base technique still below one active rule
        assert [rule["title"] for rule in body["rules"]] == ["Obfuscation", "Obfuscation variant"]

    @pytest.mark.parametrize("payload", [
        {"sortBy": "severity"},
        {"thresholds": {"tactics": -1}},
    ])
    def test_gain_rejects_invalid_body(self, client, payload):
        assert client.post("/api/inactive-rules/gain", json=payload).status_code == 422

    def test_rule_content_active(self, client, active_dir):
        response = client.get("/api/rule-content", params={"ruleId": "A1"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/yaml")
        assert response.text == (active_dir / "a1.yaml").read_text(encoding="utf-8")

    def test_rule_content_keeps_crlf_line_endings(self, tmp_path, taxonomy_loader):
        raw = b"id: R1\r\ntitle: CRLF rule\r\ntactics:\r\n  - TA0006\r\n"
        rules = tmp_path / "crlf"
        rules.mkdir()
        (rules / "r1.yaml").write_bytes(raw)
        context = build_context(BoardSettings(active_directory=str(rules)), loader=taxonomy_loader)

        response = TestClient(create_app(context)).get("/api/rule-content", params={"ruleId": "R1"})

        assert response.status_code == 200
        assert response.content == raw

    def test_rule_content_inactive_json(self, client, inactive_dir):
        response = client.get("/api/rule-content", params={"ruleId": "I3"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/json")
        assert response.text == (inactive_dir / "i3.json").read_text(encoding="utf-8")

    def test_rule_content_unknown(self, client):
        response = client.get("/api/rule-content", params={"ruleId": "nope"})

        assert response.status_code == 404
        assert "nope" in response.text

    def test_rule_content_vanished(self, client, active_dir):
        os.remove(active_dir / "a1.yaml")

        assert client.get("/api/rule-content", params={"ruleId": "A1"}).status_code == 404

    def test_rule_content_requires_rule_id(self, client):
        assert client.get("/api/rule-content").status_code == 400

    def test_coverage_summary(self, client):
        body = client.get("/api/coverage-summary").json()

        assert body[0] == {
            "tacticId": "TA0006", "name": "Credential Access", "ruleTotal": 1,
            "techniques": 1, "coveredTechniques": 1
        }

    def test_missing_techniques(self, client):
        body = client.get("/api/missing-techniques").json()

        assert [row["techniqueId"] for row in body] == ["T1003.002", "T1027", "T1055.001"]

    def test_missing_techniques_csv(self, client):
        response = client.get("/api/missing-techniques", params={"format": "csv"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        lines = response.text.splitlines()
        assert lines[0].startswith("tacticId,tacticName,techniqueId")
        assert len(lines) == 4

    def test_duplicates_and_stats(self, client):
        assert client.get("/api/duplicates").json() == []

        stats = client.get("/api/stats").json()
        assert stats["active"]["rules"] == 2
        assert stats["inactive"]["rules"] == 4


class TestStaticClient:

    def test_static_dir_mounted_after_api(self, board_context, tmp_path):
        static_dir = tmp_path / "dist"
        static_dir.mkdir()
        (static_dir / "index.html").write_text("<html>board</html>", encoding="utf-8")

        client = TestClient(create_app(board_context, static_dir=str(static_dir)))

        assert "board" in client.get("/").text
        assert client.get("/api/rule-counts").status_code == 200
        assert client.get("/health").json()["status"] == "ok"

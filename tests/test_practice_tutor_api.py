"""
API tests for adaptive practice, the AI tutor and configuration
"""
from conftest import make_question, question_payload, upload_text

PRACTICE_QUESTIONS = [
    make_question("Which particle has a negative charge?",
                  ["Electron", "Proton", "Neutron", "Nucleus"], topic="Chemistry", difficulty="easy"),
    make_question("What is the pH of pure water?",
                  ["7", "1", "14", "10"], topic="Chemistry", difficulty="easy"),
]

DOUBT = {
    "question_text": "Where does photosynthesis take place?",
    "options": ["Chloroplast", "Nucleus", "Ribosome", "Vacuole"],
    "correct_answer": "A",
    "user_answer": "B",
    "doubt_text": "Why is it not the nucleus?",
    "topic": "Biology",
}


def fail_chemistry(client, headers, fake_llm):
    """Take a test and get the Chemistry question wrong"""
    fake_llm.set_responses([question_payload(
        make_question("Where does photosynthesis take place?",
                      ["Chloroplast", "Nucleus", "Ribosome", "Vacuole"], topic="Biology"),
        make_question("What is the chemical symbol of sodium?", ["Na", "S", "So", "Sd"], topic="Chemistry"),
    )])
    test = client.post(
        "/api/tests/generate",
        headers=headers,
        json={"test_config": {"exam_type": "NEET", "question_count": 2}},
    ).json()["test"]
    first = test["questions"][0]
    client.post(f"/api/tests/{test['id']}/submit", headers=headers, json={"answers": {first["id"]: "A"}})


class TestPractice:
    """Test cases for /api/practice"""

    def test_no_history(self, client, auth_headers):
        weak = client.get("/api/practice/weak-topics", headers=auth_headers).json()
        generated = client.post("/api/practice/generate", headers=auth_headers, json={})

        assert weak["weak_topics"] == []
        assert weak["message"].startswith("No weak topics found!")
        assert len(weak["recommendations"]) == 3
        assert generated.json()["session_id"] is None

    def test_weak_topics_from_tests(self, client, auth_headers, fake_llm):
        fail_chemistry(client, auth_headers, fake_llm)

        body = client.get("/api/practice/weak-topics", headers=auth_headers).json()

        assert [w["topic"] for w in body["weak_topics"]] == ["Chemistry"]
        assert body["weak_topics"][0]["priority"] == "high"
        assert body["summary"]["total_weak_topics"] == 1

    def test_practice_round_trip(self, client, auth_headers, fake_llm):
        fail_chemistry(client, auth_headers, fake_llm)
        fake_llm.set_responses([question_payload(*PRACTICE_QUESTIONS)])

        generated = client.post(
            "/api/practice/generate",
            headers=auth_headers,
            json={"question_count": 2, "exam_type": "NEET"},
        )

        assert generated.status_code == 201
        session = generated.json()
        assert len(session["questions"]) == 2
        assert session["weak_topics"][0]["topic"] == "Chemistry"
        assert session["tips"]
        assert "- Chemistry: 0% (high priority, easy difficulty)" in fake_llm.last_prompt()

        submitted = client.post(
            f"/api/practice/{session['session_id']}/submit",
            headers=auth_headers,
            json={"answers": {"0": "A", "1": "a"}},
        )

        assert submitted.status_code == 200
        result = submitted.json()
        assert result["score"] == 100
        assert result["message"] == "Great improvement!"
        assert result["improvement"] == {"Chemistry": 100}

        again = client.post(
            f"/api/practice/{session['session_id']}/submit",
            headers=auth_headers,
            json={"answers": {}},
        )
        assert again.status_code == 409

        sessions = client.get("/api/practice/sessions", headers=auth_headers).json()
        assert sessions["sessions"][0]["status"] == "completed"
        assert sessions["sessions"][0]["weak_topics"] == ["Chemistry"]

    def test_requested_topics(self, client, auth_headers, fake_llm):
        """Explicit topics are practiced even without history"""
        fake_llm.set_responses([question_payload(
            make_question("What is the unit of force?", ["Newton", "Joule", "Watt", "Pascal"], topic="Physics"),
        )])

        response = client.post("/api/practice/generate", headers=auth_headers, json={"topics": ["Physics"]})

        assert response.status_code == 201
        assert response.json()["weak_topics"][0] == {
            "topic": "Physics",
            "score": 0,
            "questions_attempted": 0,
            "priority": "medium",
            "suggested_difficulty": "medium",
        }

    def test_low_score_message(self, client, auth_headers, fake_llm):
        fake_llm.set_responses([question_payload(*PRACTICE_QUESTIONS)])
        session = client.post(
            "/api/practice/generate", headers=auth_headers, json={"topics": ["Chemistry"]}
        ).json()

        result = client.post(
            f"/api/practice/{session['session_id']}/submit",
            headers=auth_headers,
            json={"answers": {"0": "B"}},
        ).json()

        assert result["score"] == 0
        assert result["message"] == "Keep practicing!"

    def test_unknown_session(self, client, auth_headers):
        response = client.post("/api/practice/missing/submit", headers=auth_headers, json={"answers": {}})
        assert response.status_code == 404


class TestTutor:
    """Test cases for /api/tutor"""

    def test_resolve_doubt_with_material(self, client, auth_headers, fake_llm):
        material = upload_text(client, auth_headers, topic="Photosynthesis").json()["material"]
        fake_llm.set_responses(["Photosynthesis happens in the chloroplast, not the nucleus."])

        response = client.post("/api/tutor/doubt", headers=auth_headers, json=DOUBT)

        assert response.status_code == 200
        body = response.json()
        assert body["explanation"] == "Photosynthesis happens in the chloroplast, not the nucleus."
        assert body["confidence"] == "medium"
        assert body["references"][0]["material_id"] == material["id"]
        assert "A) Chloroplast" in fake_llm.last_prompt()

    def test_resolve_doubt_without_material(self, client, auth_headers, fake_llm):
        fake_llm.set_responses(["Chloroplasts contain chlorophyll."])

        body = client.post("/api/tutor/doubt", headers=auth_headers, json=DOUBT).json()

        assert body["confidence"] == "low"
        assert body["references"] == []

    def test_history_and_feedback(self, client, auth_headers, fake_llm):
        fake_llm.set_responses(["Because of chlorophyll."])
        doubt_id = client.post("/api/tutor/doubt", headers=auth_headers, json=DOUBT).json()["doubt_id"]

        feedback = client.post(
            f"/api/tutor/history/{doubt_id}/feedback", headers=auth_headers, json={"was_helpful": True}
        )
        history = client.get("/api/tutor/history", headers=auth_headers).json()

        assert feedback.json()["was_helpful"] is True
        assert history["total"] == 1
        assert history["history"][0]["doubt_text"] == DOUBT["doubt_text"]
        assert history["history"][0]["was_helpful"] is True

    def test_feedback_unknown_doubt(self, client, auth_headers):
        response = client.post(
            "/api/tutor/history/missing/feedback", headers=auth_headers, json={"was_helpful": False}
        )
        assert response.status_code == 404

    def test_rate_limit(self, client, auth_headers, fake_llm):
        """Five doubts a minute, the sixth is refused"""
        fake_llm.set_responses(["Explanation"])
        for _ in range(5):
            assert client.post("/api/tutor/doubt", headers=auth_headers, json=DOUBT).status_code == 200

        response = client.post("/api/tutor/doubt", headers=auth_headers, json=DOUBT)

        assert response.status_code == 429
        body = response.json()
        assert body["error_code"] == "RATE_LIMITED"
        assert 1 <= body["retry_after"] <= 60
        assert response.headers["Retry-After"] == str(body["retry_after"])

    def test_llm_failure(self, client, auth_headers, fake_llm):
        fake_llm.error = RuntimeError("model not loaded")

        response = client.post("/api/tutor/doubt", headers=auth_headers, json=DOUBT)

        assert response.status_code == 503
        assert client.get("/api/tutor/history", headers=auth_headers).json()["total"] == 0

    def test_needs_two_options(self, client, auth_headers):
        response = client.post("/api/tutor/doubt", headers=auth_headers, json={**DOUBT, "options": ["Only"]})
        assert response.status_code == 422


class TestConfigAndHealth:
    """Test cases for /api/config and service endpoints"""

    def test_config(self, client):
        config = client.get("/api/config").json()["config"]

        assert config["chunk_strategies"]["SMALL"] == {"chunk_size": 500, "chunk_overlap": 100}
        assert config["weak_topic_threshold"] == 70.0

    def test_llm_info_and_status(self, client):
        info = client.get("/api/config/llm").json()
        status = client.get("/api/config/llm/status").json()

        assert info["success"] is True
        assert "ollama" in info["available_providers"]
        assert status == {"connected": True, "provider": "fake", "model": "fake-model"}

    def test_switch_requires_auth(self, client):
        assert client.post("/api/config/llm", json={"provider": "ollama"}).status_code == 401

    def test_unknown_provider(self, client, auth_headers):
        response = client.post("/api/config/llm", headers=auth_headers, json={"provider": "nonexistent"})

        assert response.status_code == 400
        assert "Unknown provider" in response.json()["error"]

    def test_index_stats(self, client, auth_headers):
        """Stats count the whole collection and the caller's own chunks"""
        assert client.get("/api/config/index/stats").status_code == 401

        upload_text(client, auth_headers)
        stats = client.get("/api/config/index/stats", headers=auth_headers).json()["stats"]

        assert stats["user_chunks"] == 1
        assert stats["total_chunks"] == 1
        assert stats["collection_name"].startswith("test_")

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "healthy"
        assert client.get("/").json()["name"] == "Mockify API"

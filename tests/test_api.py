import io
import json

import pytest

import dependencies
from api.error_utils import ImageGenerationError, UpstreamError
from gemini_service import ClassificationGateway
from models import QuizQuestion
from quiz_generator import QuestionSynthesizer
from tip_generator import FALLBACK_TIPS, TipProvider

from conftest import FakeGeminiClient, FakeGroqClient, FakeImageGenerator, ScriptedSynthesizer, gemini_text_response

CLASSIFY_REPLY = '{"container": "Verde", "details": {"confidence": "Media", "objectName": "Cáscara de banano", "reason": "Es orgánico."}}'


def _question(container="Blanco (Aprovechables)"):
    return QuizQuestion(image_url="data:image/png;base64,AAAA", waste_name="Botella PET",
                        correct_container=container, justification="Es plástico limpio.")


@pytest.mark.parametrize("path", ["/classify", "/api/analyze"])
def test_classify_returns_result(client, png_bytes, path) -> None:
    dependencies.override("classifier", ClassificationGateway(FakeGeminiClient(gemini_text_response(CLASSIFY_REPLY))))

    response = client.post(path, data={"image": (io.BytesIO(png_bytes), "foto.png", "image/png")},
                           content_type="multipart/form-data")

    assert response.status_code == 200
    assert response.get_json() == {
        "container": "Verde (Orgánicos)",
        "details": {"confidence": "Media", "objectName": "Cáscara de banano", "reason": "Es orgánico."},
    }


def test_classify_without_image_is_400(client) -> None:
    response = client.post("/classify", data={}, content_type="multipart/form-data")

    assert response.status_code == 400
    assert response.get_json()["error_code"] == "INVALID_REQUEST"


def test_classify_with_empty_image_is_400(client) -> None:
    dependencies.override("classifier", ClassificationGateway(FakeGeminiClient(gemini_text_response(CLASSIFY_REPLY))))

    response = client.post("/classify", data={"image": (io.BytesIO(b""), "vacia.png", "image/png")},
                           content_type="multipart/form-data")

    assert response.status_code == 400


def test_classify_unparseable_reply_is_500(client, png_bytes) -> None:
    dependencies.override("classifier", ClassificationGateway(FakeGeminiClient(gemini_text_response("No sé."))))

    response = client.post("/classify", data={"image": (io.BytesIO(png_bytes), "foto.png", "image/png")},
                           content_type="multipart/form-data")

    assert response.status_code == 500
    assert response.get_json()["error_code"] == "UPSTREAM_PARSE_ERROR"


def test_classify_provider_failure_is_500_with_message(client, png_bytes) -> None:
    dependencies.override("classifier", ClassificationGateway(FakeGeminiClient(RuntimeError("API key not valid"))))

    response = client.post("/classify", data={"image": (io.BytesIO(png_bytes), "foto.png", "image/png")},
                           content_type="multipart/form-data")

    body = response.get_json()
    assert response.status_code == 500
    assert body["error_code"] == "EXTERNAL_SERVICE_ERROR"
    assert body["details"]["upstream_message"] == "API key not valid"


@pytest.mark.parametrize("path", ["/next-question", "/api/create"])
def test_next_question_payload(client, path) -> None:
    groq = FakeGroqClient(json.dumps({"name": "Lata de atún", "container": "Blanco",
                                      "justification": "Es metal.", "imagePrompt": "tuna can"}))
    dependencies.override("question_synthesizer", QuestionSynthesizer(groq, FakeImageGenerator()))

    response = client.get(path)

    body = response.get_json()
    assert response.status_code == 200
    assert set(body) == {"imageUrl", "wasteName", "correctContainer", "justification"}
    assert body["wasteName"] == "Lata de atún"
    assert body["correctContainer"] == "Blanco (Aprovechables)"
    assert body["imageUrl"].startswith("data:image/png;base64,")


def test_next_question_image_failure_is_500(client) -> None:
    dependencies.override("question_synthesizer", QuestionSynthesizer(
        FakeGroqClient("nada"), FakeImageGenerator(error=ImageGenerationError("Gemini no devolvió datos de imagen"))))

    response = client.get("/next-question")

    assert response.status_code == 500
    assert response.get_json()["error_code"] == "IMAGE_GENERATION_ERROR"


@pytest.mark.parametrize("path", ["/tip", "/api/tips"])
def test_tip_never_fails(client, path) -> None:
    dependencies.override("tip_provider", TipProvider(FakeGroqClient(ConnectionError("down"))))

    response = client.get(path)

    assert response.status_code == 200
    assert response.get_json()["tip"] in FALLBACK_TIPS


def test_quiz_session_flow_over_http(client) -> None:
    dependencies.override("question_synthesizer", ScriptedSynthesizer(_question("Verde (Orgánicos)")))

    created = client.post("/quiz/sessions")
    assert created.status_code == 201
    session_id = created.get_json()["sessionId"]
    assert created.get_json()["phase"] == "presenting"
    assert created.get_json()["questionIndex"] == 1

    for _ in range(3):
        answered = client.post(f"/quiz/sessions/{session_id}/answer", json={"option": "Verde"})
        assert answered.status_code == 200
        assert answered.get_json()["answer"]["isCorrect"] is True
        client.post(f"/quiz/sessions/{session_id}/continue")

    final = client.get(f"/quiz/sessions/{session_id}").get_json()
    assert final["phase"] == "finished"
    assert final["score"] == 3

    assert client.delete(f"/quiz/sessions/{session_id}").status_code == 204
    assert client.get(f"/quiz/sessions/{session_id}").status_code == 404


def test_quiz_session_placeholder_on_synthesizer_failure(client) -> None:
    dependencies.override("question_synthesizer", ScriptedSynthesizer(UpstreamError("503 from Gemini")))

    body = client.post("/quiz/sessions").get_json()

    assert body["phase"] == "presenting"
    assert body["question"]["justification"] == "Modo demo"
    assert body["error"] == "503 from Gemini"


def test_quiz_session_rejects_illegal_actions(client) -> None:
    dependencies.override("question_synthesizer", ScriptedSynthesizer(_question()))
    session_id = client.post("/quiz/sessions").get_json()["sessionId"]

    assert client.post(f"/quiz/sessions/{session_id}/continue").status_code == 409
    assert client.post(f"/quiz/sessions/{session_id}/finish").status_code == 409
    assert client.post(f"/quiz/sessions/{session_id}/answer", json={"option": "Azul"}).status_code == 400
    assert client.post(f"/quiz/sessions/{session_id}/answer", json={}).status_code == 400
    assert client.post("/quiz/sessions/does-not-exist/answer", json={"option": "Blanco"}).status_code == 404


def test_health_reports_checks(client) -> None:
    response = client.get("/health")

    body = response.get_json()
    assert response.status_code == 200
    assert set(body["checks"]) == {"gemini", "groq", "sessions"}


def test_unknown_route_is_json_404(client) -> None:
    response = client.get("/no-existe")

    assert response.status_code == 404
    assert response.get_json()["error_code"] == "NOT_FOUND"


def test_tip_is_not_rate_limited(client) -> None:
    from main import limiter
    dependencies.override("tip_provider", TipProvider(FakeGroqClient(ConnectionError("down"))))
    limiter.enabled = True
    try:
        statuses = [client.get("/tip").status_code for _ in range(305)]
    finally:
        limiter.enabled = False

    assert set(statuses) == {200}


def test_oversized_image_is_400(client, monkeypatch, png_bytes) -> None:
    from PIL import Image
    dependencies.override("classifier", ClassificationGateway(FakeGeminiClient(gemini_text_response(CLASSIFY_REPLY))))
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)

    response = client.post("/classify", data={"image": (io.BytesIO(png_bytes), "bomba.png", "image/png")},
                           content_type="multipart/form-data")

    assert response.status_code == 400
    assert response.get_json()["error_code"] == "INVALID_REQUEST"


def test_error_utils_exposes_only_used_shortcuts() -> None:
    import api.error_utils as error_utils
    assert not hasattr(error_utils, "not_found_error")
    assert not hasattr(error_utils, "server_error")

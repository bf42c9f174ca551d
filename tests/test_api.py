from app.errors import QuotaExceededError, SafetyBlockedError, UpstreamProtocolError
from app.main import EMPTY_MESSAGE_ERROR, GENERIC_ERROR, RESET_MESSAGE
from app.services.history import ToolCallRequest
from app.services.model_client import TextReply, ToolCallsRequested


def test_chat_returns_reply_and_history(client, use_loop, make_loop, scripted_model):
    model = scripted_model(
        ToolCallsRequested((ToolCallRequest("get_current_time", {}),)),
        lambda result: TextReply(f"It is {result.response['current_time']}."),
    )
    use_loop(make_loop(model))

    prior = [{"role": "user", "parts": [{"text": "hi"}]}, {"role": "model", "parts": [{"text": "Kneel."}]}]
    resp = client.post("/chat", json={"message": "What time is it?", "history": prior})

    assert resp.status_code == 200
    body = resp.json()
    assert body["response"].startswith("It is ")
    assert body["history"][:2] == prior
    assert body["history"][2] == {"role": "user", "parts": [{"text": "What time is it?"}]}
    assert body["history"][3] == {
        "role": "model",
        "parts": [{"functionCall": {"name": "get_current_time", "args": {}}}],
    }
    assert body["history"][4]["role"] == "function"
    assert "current_time" in body["history"][4]["parts"][0]["functionResponse"]["response"]
    assert body["history"][5] == {"role": "model", "parts": [{"text": body["response"]}]}


def test_empty_message_is_rejected_without_calling_model(client, use_loop, make_loop, scripted_model):
    model = scripted_model()
    use_loop(make_loop(model))

    for payload in ({"message": ""}, {"message": "   "}, {"history": []}):
        resp = client.post("/chat", json=payload)
        assert resp.status_code == 400
        assert resp.json() == {"error": EMPTY_MESSAGE_ERROR}
    assert model.sent == []
    assert model.histories == []


def test_malformed_history_is_a_client_error(client, use_loop, make_loop, scripted_model):
    use_loop(make_loop(scripted_model()))
    resp = client.post("/chat", json={"message": "hi", "history": [{"role": "narrator", "parts": [{"text": "x"}]}]})
    assert resp.status_code == 400
    assert "error" in resp.json()


def test_quota_error_keeps_upstream_status(client, use_loop, make_loop, scripted_model):
    use_loop(make_loop(scripted_model(QuotaExceededError("slow down"))))
    resp = client.post("/chat", json={"message": "hi"})
    assert resp.status_code == 429
    assert resp.json() == {"error": "slow down"}


def test_safety_block_is_reported(client, use_loop, make_loop, scripted_model):
    use_loop(make_loop(scripted_model(SafetyBlockedError("blocked. Details: HARASSMENT"))))
    resp = client.post("/chat", json={"message": "insult"})
    assert resp.status_code == 500
    assert "HARASSMENT" in resp.json()["error"]


def test_upstream_status_is_propagated(client, use_loop, make_loop, scripted_model):
    use_loop(make_loop(scripted_model(UpstreamProtocolError("Gemini API error: 503 down", status_code=503))))
    resp = client.post("/chat", json={"message": "hi"})
    assert resp.status_code == 503


def test_unexpected_error_becomes_generic_500(client, use_loop, make_loop, scripted_model):
    use_loop(make_loop(scripted_model(RuntimeError("socket exploded"))))
    resp = client.post("/chat", json={"message": "hi"})
    assert resp.status_code == 500
    assert resp.json() == {"error": GENERIC_ERROR}


def test_unknown_tool_never_reaches_http_layer(client, use_loop, make_loop, scripted_model):
    model = scripted_model(
        ToolCallsRequested((ToolCallRequest("za_warudo", {}),)),
        TextReply("Useless!"),
    )
    use_loop(make_loop(model))
    resp = client.post("/chat", json={"message": "Stop time", "history": []})
    assert resp.status_code == 200
    assert resp.json()["response"] == "Useless!"


def test_chat_before_startup_is_unavailable(client):
    resp = client.post("/chat", json={"message": "hi"})
    assert resp.status_code == 503


def test_reset_is_idempotent(client):
    responses = [client.post("/reset") for _ in range(3)]
    assert all(r.status_code == 200 for r in responses)
    assert all(r.json() == {"message": RESET_MESSAGE} for r in responses)

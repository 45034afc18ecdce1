from tools.llm_logger import get_llm_logger


class Response:
    content = "\\documentclass{article}"
    response_metadata = {
        "id": "chatcmpl-1",
        "model_name": "gpt-test",
        "finish_reason": "stop",
        "token_usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
    }


def test_log_llm_call_appends_entries():
    llm_logger = get_llm_logger()
    for _ in range(2):
        llm_logger.log_llm_call(
            messages=[{"role": "user", "content": "summarize"}],
            response=Response(),
            model="gpt-test",
            module="tests",
            metadata={"function": "synthesize"},
        )
    entries = llm_logger.read_logs()
    assert len(entries) == 2
    assert entries[0]["response"]["usage"]["total_tokens"] == 15
    assert entries[0]["response"]["content"] == "\\documentclass{article}"
    assert entries[0]["metadata"] == {"function": "synthesize"}


def test_logging_can_be_disabled(monkeypatch):
    monkeypatch.setenv("LLM_LOG_ENABLED", "false")
    llm_logger = get_llm_logger()
    llm_logger.log_llm_call([], Response(), "gpt-test", "tests")
    assert llm_logger.read_logs() == []


def test_unwritable_log_path_does_not_raise(monkeypatch, tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    monkeypatch.setenv("LLM_LOG_PATH", str(blocker / "sub" / "log.jsonl"))
    get_llm_logger().log_llm_call([], Response(), "gpt-test", "tests")

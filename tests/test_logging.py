import structlog

from pkg_authstate.logging import _redact_secrets, configure_logging


def test_redacts_credential_fields():
    event = _redact_secrets(None, "info", {
        "event": "sign_in_completed",
        "token": "abcdef123",
        "renew_token": "r1r1r1r1",
        "authorization": "Bearer xyz",
        "user": "jo",
        "short_token": "ab",
    })

    assert event == {
        "event": "sign_in_completed",
        "token": "ab***23",
        "renew_token": "r1***r1",
        "authorization": "Be***yz",
        "user": "jo",
        "short_token": "ab",
    }


def test_configure_logging_picks_renderer():
    try:
        configure_logging(json_output=True)
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)
        assert _redact_secrets in processors

        configure_logging(development_mode=True)
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)
    finally:
        structlog.reset_defaults()

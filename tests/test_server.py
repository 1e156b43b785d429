"""Tests for the webhook application."""

import hashlib
import hmac
import json

import pytest

from conftest import FakeHost, make_payload
from pr_threshold.config import Config, ServerConfig, ThresholdConfig
from pr_threshold.server import create_app, verify_signature


def _post(app, payload, event="pull_request", headers=None, path="/"):
    body = payload if isinstance(payload, (bytes, str)) else json.dumps(payload)
    all_headers = {"X-GitHub-Event": event} if event else {}
    all_headers.update(headers or {})
    return app.test_client().post(
        path, data=body, headers=all_headers, content_type="application/json"
    )


def _app(host, max_files=10, strict=False, secret=""):
    config = Config(
        thresholds=ThresholdConfig(max_files=max_files, strict=strict),
        server=ServerConfig(webhook_secret=secret),
    )
    return create_app(config, host)


class TestScenarios:
    def test_small_pr_gets_success_status(self, fake_host):
        response = _post(_app(fake_host), make_payload(changed_files=5))

        assert response.status_code == 200
        assert fake_host.operations() == ["create_status"]
        assert fake_host.calls[0][4] == "success"
        assert "success" in response.get_data(as_text=True)

    def test_large_pr_gets_comment_and_failure_status(self, fake_host):
        response = _post(_app(fake_host), make_payload(changed_files=50))

        assert response.status_code == 200
        assert fake_host.operations() == ["create_comment", "create_status"]
        comment_body = fake_host.calls[0][4]
        assert "50 files were changed, but the threshold is 10" in comment_body
        assert fake_host.calls[1][4] == "failure"

    def test_large_pr_is_closed_in_strict_mode(self, fake_host):
        response = _post(_app(fake_host, strict=True), make_payload(changed_files=50))

        assert response.status_code == 200
        assert fake_host.operations() == ["create_comment", "close_pull_request"]
        assert "Closed octo/widgets#7" in response.get_data(as_text=True)

    def test_closed_action_is_ignored(self, fake_host):
        response = _post(_app(fake_host), make_payload(action="closed", changed_files=50))

        assert response.status_code == 200
        assert "Ignored" in response.get_data(as_text=True)
        assert fake_host.calls == []

    def test_malformed_json_is_rejected(self, fake_host):
        response = _post(_app(fake_host), b"{not json")

        assert response.status_code == 400
        assert response.get_data(as_text=True).startswith("Problem decoding webhook payload")
        assert fake_host.calls == []


class TestFiltering:
    @pytest.mark.parametrize("payload", [{}, None])
    def test_empty_payload_is_ignored(self, fake_host, payload):
        response = _post(_app(fake_host), payload)

        assert response.status_code == 200
        assert fake_host.calls == []

    @pytest.mark.parametrize("body", [b"[1, 2]", b"[]", b'"hello"', b"42", b"true"])
    def test_non_object_json_is_rejected(self, fake_host, body):
        response = _post(_app(fake_host), body)

        assert response.status_code == 400
        assert response.get_data(as_text=True).startswith("Problem decoding webhook payload")
        assert fake_host.calls == []

    @pytest.mark.parametrize("action", [5, ["opened"], {"name": "opened"}])
    def test_non_string_action_is_rejected(self, fake_host, action):
        response = _post(_app(fake_host), make_payload(action=action, changed_files=50))

        assert response.status_code == 400
        assert fake_host.calls == []

    def test_missing_action_is_ignored(self, fake_host):
        payload = make_payload()
        del payload["action"]

        response = _post(_app(fake_host), payload)

        assert response.status_code == 200
        assert fake_host.calls == []

    def test_ping_event_is_ignored(self, fake_host):
        response = _post(_app(fake_host), {"zen": "Keep it logically awesome."}, event="ping")

        assert response.status_code == 200
        assert "'ping'" in response.get_data(as_text=True)
        assert fake_host.calls == []

    def test_missing_event_header_is_processed(self, fake_host):
        response = _post(_app(fake_host), make_payload(), event=None)

        assert response.status_code == 200
        assert fake_host.operations() == ["create_status"]

    def test_incomplete_pull_request_is_rejected(self, fake_host):
        payload = make_payload()
        del payload["pull_request"]["head"]

        response = _post(_app(fake_host), payload)

        assert response.status_code == 400
        assert "pull_request.head" in response.get_data(as_text=True)
        assert fake_host.calls == []

    def test_webhook_alias_path(self, fake_host):
        response = _post(_app(fake_host), make_payload(), path="/webhook")

        assert response.status_code == 200

    def test_get_is_not_allowed(self, fake_host):
        response = _app(fake_host).test_client().get("/")

        assert response.status_code == 405


class TestUpstreamFailures:
    def test_comment_failure_returns_500(self):
        host = FakeHost(fail_on=("create_comment",))

        response = _post(_app(host), make_payload(changed_files=50))

        assert response.status_code == 500
        assert host.operations() == ["create_comment"]

    def test_status_failure_returns_500(self):
        host = FakeHost(fail_on=("create_status",))

        response = _post(_app(host), make_payload(changed_files=5))

        assert response.status_code == 500
        assert "status" in response.get_data(as_text=True)


class TestSignature:
    SECRET = "s3cret"

    def _sign(self, body: bytes) -> str:
        digest = hmac.new(self.SECRET.encode(), body, hashlib.sha256).hexdigest()
        return f"sha256={digest}"

    def test_valid_signature_is_accepted(self, fake_host):
        body = json.dumps(make_payload()).encode()

        response = _post(
            _app(fake_host, secret=self.SECRET), body,
            headers={"X-Hub-Signature-256": self._sign(body)},
        )

        assert response.status_code == 200
        assert fake_host.operations() == ["create_status"]

    def test_bad_signature_is_rejected(self, fake_host):
        body = json.dumps(make_payload()).encode()

        response = _post(
            _app(fake_host, secret=self.SECRET), body,
            headers={"X-Hub-Signature-256": "sha256=" + "0" * 64},
        )

        assert response.status_code == 401
        assert fake_host.calls == []

    def test_missing_signature_is_rejected(self, fake_host):
        response = _post(_app(fake_host, secret=self.SECRET), make_payload())

        assert response.status_code == 401

    def test_verify_signature_rejects_other_algorithms(self):
        body = b"{}"
        digest = hmac.new(self.SECRET.encode(), body, hashlib.sha1).hexdigest()

        assert verify_signature(body, self.SECRET, f"sha1={digest}") is False
        assert verify_signature(body, self.SECRET, None) is False


def test_healthz(fake_host):
    response = _app(fake_host).test_client().get("/healthz")

    assert response.status_code == 200
    assert response.get_data(as_text=True) == "ok"

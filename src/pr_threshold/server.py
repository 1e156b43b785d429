"""Flask application receiving pull request webhooks."""

import hashlib
import hmac
import json
import logging

from flask import Flask, Response, request

from pr_threshold.config import Config
from pr_threshold.exceptions import PayloadError
from pr_threshold.gates.threshold_gate import evaluate
from pr_threshold.github_client import PullRequestSnapshot, SourceControlHost
from pr_threshold.reactor import Action, ReactionOutcome, react

logger = logging.getLogger(__name__)

PULL_REQUEST_EVENT = "pull_request"


def verify_signature(body: bytes, secret: str, signature_header: str | None) -> bool:
    """Check an ``X-Hub-Signature-256`` header against the raw request body."""
    if not signature_header:
        return False

    algorithm, _, signature = signature_header.partition("=")
    if algorithm != "sha256" or not signature:
        return False

    expected = hmac.new(secret.encode("utf-8"), msg=body, digestmod=hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected.encode(), signature.encode("utf-8", "replace"))


def handle_webhook(
    body: bytes,
    event: str | None,
    config: Config,
    client: SourceControlHost,
) -> ReactionOutcome:
    """Run one webhook delivery through parsing, evaluation and reaction."""
    try:
        payload = json.loads(body)
    except ValueError as e:
        return ReactionOutcome(Action.REJECTED, 400, f"Problem decoding webhook payload: {e}")

    if payload is not None and not isinstance(payload, dict):
        return ReactionOutcome(
            Action.REJECTED,
            400,
            f"Problem decoding webhook payload: expected a JSON object, got {type(payload).__name__}",
        )

    if event and event != PULL_REQUEST_EVENT:
        return ReactionOutcome(Action.IGNORED, 200, f"Ignored '{event}' event")

    if not payload:
        return ReactionOutcome(Action.IGNORED, 200, "Ignored empty webhook payload")

    action = payload.get("action")
    if action is not None and not isinstance(action, str):
        return ReactionOutcome(
            Action.REJECTED, 400, f"Problem decoding webhook payload: invalid action {action!r}"
        )
    if not action or action == "closed":
        return ReactionOutcome(
            Action.IGNORED, 200, f"Ignored pull request event with action {action!r}"
        )

    try:
        pr = PullRequestSnapshot.from_payload(payload)
    except PayloadError as e:
        return ReactionOutcome(Action.REJECTED, 400, f"Problem decoding webhook payload: {e}")

    violations = evaluate(pr, config.thresholds)
    logger.info(
        "Evaluated %s#%d (%s): %d violation(s)", pr.full_name, pr.number, action, len(violations)
    )
    return react(client, pr, violations, config.thresholds)


def _respond(outcome: ReactionOutcome) -> Response:
    if outcome.status_code >= 400:
        logger.error("%s (%d)", outcome.message, outcome.status_code)
    else:
        logger.info("%s (%d)", outcome.message, outcome.status_code)
    return Response(outcome.message, status=outcome.status_code, mimetype="text/plain")


def create_app(config: Config, client: SourceControlHost) -> Flask:
    """Create the webhook application around an immutable config and a shared client."""
    app = Flask(__name__)

    def webhook() -> Response:
        body = request.get_data()
        secret = config.server.webhook_secret
        if secret and not verify_signature(body, secret, request.headers.get("X-Hub-Signature-256")):
            return _respond(ReactionOutcome(Action.REJECTED, 401, "Invalid webhook signature"))

        return _respond(handle_webhook(body, request.headers.get("X-GitHub-Event"), config, client))

    def healthz() -> Response:
        return Response("ok", mimetype="text/plain")

    for rule in dict.fromkeys((config.server.path, "/webhook")):
        app.add_url_rule(rule, endpoint=f"webhook:{rule}", view_func=webhook, methods=["POST"])
    app.add_url_rule("/healthz", endpoint="healthz", view_func=healthz, methods=["GET"])

    return app

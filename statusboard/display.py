"""
Render-ready views of a snapshot.

Turns outcomes into the label/verdict pairs a page shows, flattens a
snapshot into one row per domain, and picks the HTTP caching headers for
a served page. Transport error detail never leaves this layer.
"""

from dataclasses import dataclass
from datetime import timedelta, timezone
from email.utils import format_datetime

from .cache import CacheState
from .outcomes import Outcome, OutcomeKind, Protocol, Snapshot, Verdict

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S UTC"
STALE_CACHE_CONTROL = "public, max-age=1, stale-if-error=86400"

LABELS = {
    OutcomeKind.OK: "OK",
    OutcomeKind.DEFAULT_LANDING_PAGE: "OK",
    OutcomeKind.CORRECT_REDIRECT: "Redirect",
    OutcomeKind.INCORRECT_REDIRECT: "Redirect",
    OutcomeKind.TEAPOT: "Teapot",
    OutcomeKind.UNEXPECTED_RESPONSE: "Unexpected response",
    OutcomeKind.TIMEOUT: "Timeout",
    OutcomeKind.UNTRUSTED_CERTIFICATE: "Untrusted certificate",
    OutcomeKind.INVALID_CERTIFICATE: "Invalid certificate",
    OutcomeKind.CONNECT_FAILED: "Failed to connect",
    OutcomeKind.OTHER_ERROR: "Error",
}

VERDICTS = {
    OutcomeKind.DEFAULT_LANDING_PAGE: Verdict.NEARLY_CORRECT,
    OutcomeKind.CORRECT_REDIRECT: Verdict.CORRECT,
    OutcomeKind.INCORRECT_REDIRECT: Verdict.NEARLY_CORRECT,
    OutcomeKind.TEAPOT: Verdict.NEARLY_CORRECT,
    OutcomeKind.UNEXPECTED_RESPONSE: Verdict.INCORRECT,
    OutcomeKind.TIMEOUT: Verdict.INCORRECT,
    OutcomeKind.UNTRUSTED_CERTIFICATE: Verdict.NEARLY_CORRECT,
    OutcomeKind.INVALID_CERTIFICATE: Verdict.NEARLY_CORRECT,
    OutcomeKind.CONNECT_FAILED: Verdict.INCORRECT,
    OutcomeKind.OTHER_ERROR: Verdict.INCORRECT,
}


def verdict_for(outcome: Outcome, protocol: Protocol) -> Verdict:
    # Serving content over plain HTTP instead of redirecting is only nearly right.
    if outcome.kind is OutcomeKind.OK:
        return Verdict.CORRECT if protocol is Protocol.HTTPS else Verdict.NEARLY_CORRECT
    return VERDICTS[outcome.kind]


@dataclass(frozen=True)
class DisplayCell:
    label: str
    verdict: Verdict
    status_code: int | None

    @classmethod
    def from_outcome(cls, outcome: Outcome, protocol: Protocol) -> "DisplayCell":
        status = None if outcome.kind is OutcomeKind.TEAPOT else outcome.status_code
        return cls(LABELS[outcome.kind], verdict_for(outcome, protocol), status)

    @property
    def text(self) -> str:
        if self.status_code is None:
            return self.label
        return f"{self.label} ({self.status_code})"


def format_timestamp(snapshot: Snapshot) -> str:
    return snapshot.created_at.strftime(TIMESTAMP_FORMAT)


def snapshot_rows(snapshot: Snapshot) -> list[dict]:
    """
    One flat dict per domain, in snapshot order.
    """
    rows = []
    for r in snapshot.results:
        http = DisplayCell.from_outcome(r.http, Protocol.HTTP)
        https = DisplayCell.from_outcome(r.https, Protocol.HTTPS)
        rows.append({
            "id": r.domain.id,
            "label": f"{r.domain.id:02d}",
            "hostname": r.domain.hostname,
            "http": http.text,
            "http_verdict": http.verdict.value,
            "http_status": http.status_code,
            "https": https.text,
            "https_verdict": https.verdict.value,
            "https_status": https.status_code,
        })
    return rows


def response_headers(snapshot: Snapshot, state: CacheState, fresh_window_s: int = 60) -> dict[str, str]:
    """
    Caching headers for a page rendered from `snapshot`.

    Fresh pages expire when the snapshot stops being fresh; stale pages may
    only be reused briefly, but may be served on upstream errors for a day.
    """
    if state is CacheState.FRESH:
        expiry = (snapshot.created_at + timedelta(seconds=fresh_window_s)).astimezone(timezone.utc)
        return {"Expires": format_datetime(expiry, usegmt=True)}
    return {"Cache-Control": STALE_CACHE_CONTROL}

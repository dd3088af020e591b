from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from .roster import Domain


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Protocol(str, Enum):
    HTTP = "http"
    HTTPS = "https"

    def url_for(self, hostname: str) -> str:
        return f"{self.value}://{hostname}/"


class OutcomeKind(str, Enum):
    OK = "ok"
    DEFAULT_LANDING_PAGE = "default_landing_page"
    CORRECT_REDIRECT = "correct_redirect"
    INCORRECT_REDIRECT = "incorrect_redirect"
    TEAPOT = "teapot"
    UNEXPECTED_RESPONSE = "unexpected_response"
    TIMEOUT = "timeout"
    UNTRUSTED_CERTIFICATE = "untrusted_certificate"
    INVALID_CERTIFICATE = "invalid_certificate"
    CONNECT_FAILED = "connect_failed"
    OTHER_ERROR = "other_error"


# Kinds that look like a local outage when every probe of a round hits them.
TRANSPORT_DOWN_KINDS = frozenset({OutcomeKind.TIMEOUT, OutcomeKind.CONNECT_FAILED})


class Verdict(str, Enum):
    CORRECT = "correct"
    NEARLY_CORRECT = "nearly correct"
    INCORRECT = "incorrect"


@dataclass(frozen=True)
class Outcome:
    """
    Classified result of a single domain/protocol probe.

    Fields:
        kind        : Outcome category.
        status_code : HTTP status for response-based kinds, None otherwise.
        detail      : Transport error text for OTHER_ERROR. Diagnostic only,
                      it is excluded from equality and never rendered.
    """
    kind: OutcomeKind
    status_code: int | None = None
    detail: str | None = field(default=None, compare=False, repr=False)

    @classmethod
    def ok(cls, status_code: int = 200) -> "Outcome":
        return cls(OutcomeKind.OK, status_code)

    @classmethod
    def default_landing_page(cls, status_code: int = 200) -> "Outcome":
        return cls(OutcomeKind.DEFAULT_LANDING_PAGE, status_code)

    @classmethod
    def correct_redirect(cls, status_code: int) -> "Outcome":
        return cls(OutcomeKind.CORRECT_REDIRECT, status_code)

    @classmethod
    def incorrect_redirect(cls, status_code: int) -> "Outcome":
        return cls(OutcomeKind.INCORRECT_REDIRECT, status_code)

    @classmethod
    def teapot(cls) -> "Outcome":
        return cls(OutcomeKind.TEAPOT, 418)

    @classmethod
    def unexpected_response(cls, status_code: int) -> "Outcome":
        return cls(OutcomeKind.UNEXPECTED_RESPONSE, status_code)

    @classmethod
    def timeout(cls) -> "Outcome":
        return cls(OutcomeKind.TIMEOUT)

    @classmethod
    def untrusted_certificate(cls) -> "Outcome":
        return cls(OutcomeKind.UNTRUSTED_CERTIFICATE)

    @classmethod
    def invalid_certificate(cls) -> "Outcome":
        return cls(OutcomeKind.INVALID_CERTIFICATE)

    @classmethod
    def connect_failed(cls) -> "Outcome":
        return cls(OutcomeKind.CONNECT_FAILED)

    @classmethod
    def other_error(cls, detail: str | None = None) -> "Outcome":
        return cls(OutcomeKind.OTHER_ERROR, detail=detail)

    @property
    def transport_down(self) -> bool:
        return self.kind in TRANSPORT_DOWN_KINDS


@dataclass(frozen=True)
class DomainResult:
    domain: Domain
    http: Outcome
    https: Outcome

    @property
    def degenerate(self) -> bool:
        """True when neither protocol got past the transport layer."""
        return self.http.transport_down and self.https.transport_down


@dataclass(frozen=True)
class Snapshot:
    """
    One complete probing round: a result per roster domain, ordered by
    domain id, plus the time the round finished (UTC).
    """
    results: tuple[DomainResult, ...]
    created_at: datetime

    def __post_init__(self):
        ids = [r.domain.id for r in self.results]
        if any(a >= b for a, b in zip(ids, ids[1:])):
            raise ValueError("snapshot results must be strictly ascending by domain id")

    def __len__(self) -> int:
        return len(self.results)

    def age_s(self, now: datetime) -> float:
        return (now - self.created_at).total_seconds()

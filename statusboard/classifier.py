"""
Classifier module: maps one raw probe observation to an outcome category.

The decision table is:
- total (every observation maps to exactly one Outcome)
- pure (no I/O, no logging)
- ordered (first matching rule wins)
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from .outcomes import Outcome, Protocol
from .settings import NGINX_DEFAULT_PAGE_MARKER

REDIRECT_STATUSES = frozenset({301, 302, 308})
TEAPOT_STATUS = 418

# OpenSSL X509_V_ERR_* codes carried by ssl.SSLCertVerificationError.verify_code
UNTRUSTED_VERIFY_CODES = frozenset({
    2,   # unable to get issuer certificate
    18,  # self-signed certificate
    19,  # self-signed certificate in chain
    20,  # unable to get local issuer certificate
    21,  # unable to verify the first certificate
})
HOSTNAME_MISMATCH_VERIFY_CODES = frozenset({62})

# Used only when the transport gave us no verify code.
UNTRUSTED_MARKERS = (
    "certificate was not trusted",
    "unknownissuer",
    "unable to get local issuer",
    "self-signed certificate",
    "self signed certificate",
    "untrusted",
)
HOSTNAME_MISMATCH_MARKERS = (
    "certnotvalidforname",
    "certificate name mismatch",
    "hostname mismatch",
    "doesn't match",
    "not valid for",
)


class FailureKind(str, Enum):
    TIMEOUT = "timeout"
    CONNECT = "connect"
    OTHER = "other"


@dataclass(frozen=True)
class ProbeResponse:
    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: str = ""


@dataclass(frozen=True)
class ProbeFailure:
    """
    Transport-level failure. `verify_code` is set when the failure came
    from certificate verification and the TLS layer reported a code.
    """
    kind: FailureKind
    message: str = ""
    verify_code: int | None = None


Observation = ProbeResponse | ProbeFailure


def _header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is not None:
        return value
    lname = name.lower()
    for k, v in headers.items():
        if k.lower() == lname:
            return v
    return None


def canonical_redirect(hostname: str) -> str:
    return Protocol.HTTPS.url_for(hostname)


def classify_response(
    protocol: Protocol,
    hostname: str,
    response: ProbeResponse,
    marker: str = NGINX_DEFAULT_PAGE_MARKER,
) -> Outcome:
    status = response.status

    if status == 200:
        if marker and marker in response.body:
            return Outcome.default_landing_page(status)
        return Outcome.ok(status)

    if status in REDIRECT_STATUSES and protocol is Protocol.HTTP:
        location = _header(response.headers, "Location")
        if location is not None:
            if location == canonical_redirect(hostname):
                return Outcome.correct_redirect(status)
            return Outcome.incorrect_redirect(status)

    if status == TEAPOT_STATUS:
        return Outcome.teapot()

    return Outcome.unexpected_response(status)


def _certificate_outcome(failure: ProbeFailure) -> Outcome | None:
    if failure.verify_code is not None:
        if failure.verify_code in UNTRUSTED_VERIFY_CODES:
            return Outcome.untrusted_certificate()
        if failure.verify_code in HOSTNAME_MISMATCH_VERIFY_CODES:
            return Outcome.invalid_certificate()

    text = failure.message.lower()
    if any(m in text for m in UNTRUSTED_MARKERS):
        return Outcome.untrusted_certificate()
    if any(m in text for m in HOSTNAME_MISMATCH_MARKERS):
        return Outcome.invalid_certificate()
    return None


def classify_failure(protocol: Protocol, failure: ProbeFailure) -> Outcome:
    if failure.kind is FailureKind.TIMEOUT:
        return Outcome.timeout()

    if failure.kind is FailureKind.CONNECT:
        if protocol is Protocol.HTTPS:
            cert = _certificate_outcome(failure)
            if cert is not None:
                return cert
        return Outcome.connect_failed()

    return Outcome.other_error(failure.message or None)


def classify(
    protocol: Protocol,
    hostname: str,
    observation: Observation,
    marker: str = NGINX_DEFAULT_PAGE_MARKER,
) -> Outcome:
    if isinstance(observation, ProbeResponse):
        return classify_response(protocol, hostname, observation, marker)
    return classify_failure(protocol, observation)

import asyncio
import logging
import ssl

import aiohttp

from .classifier import FailureKind, Observation, ProbeFailure, ProbeResponse, classify
from .outcomes import Outcome, OutcomeKind, Protocol
from .roster import Domain
from .settings import ProbeConfig

logger = logging.getLogger(__name__)

TLS_VERSIONS = {
    "1.2": ssl.TLSVersion.TLSv1_2,
    "1.3": ssl.TLSVersion.TLSv1_3,
}


def build_ssl_context(config: ProbeConfig) -> ssl.SSLContext:
    """
    Verifying client context with the configured minimum TLS version.
    """
    try:
        minimum = TLS_VERSIONS[str(config.min_tls_version)]
    except KeyError:
        raise ValueError(f"unsupported min_tls_version: {config.min_tls_version!r}") from None
    ctx = ssl.create_default_context()
    ctx.minimum_version = minimum
    return ctx


def build_session(config: ProbeConfig) -> aiohttp.ClientSession:
    """
    One session per probing round, shared by every concurrent probe.

    The connector has no connection limit: the whole roster fans out at once.
    """
    connector = aiohttp.TCPConnector(ssl=build_ssl_context(config), limit=0)
    timeout = aiohttp.ClientTimeout(total=config.request_timeout_s)
    return aiohttp.ClientSession(
        connector=connector,
        timeout=timeout,
        headers={"User-Agent": config.user_agent},
    )


def failure_from_exception(exc: BaseException) -> ProbeFailure:
    """
    Translate an aiohttp/asyncio exception into a ProbeFailure.

    Order matters: certificate errors are connector errors, and aiohttp's
    timeout errors are also OSErrors.
    """
    message = str(exc) or type(exc).__name__

    if isinstance(exc, asyncio.TimeoutError):
        return ProbeFailure(FailureKind.TIMEOUT, message)

    if isinstance(exc, aiohttp.ClientConnectorCertificateError):
        cert_error = exc.certificate_error
        return ProbeFailure(
            FailureKind.CONNECT,
            f"{message} {cert_error}",
            getattr(cert_error, "verify_code", None),
        )

    if isinstance(exc, aiohttp.ClientConnectorError):
        return ProbeFailure(
            FailureKind.CONNECT,
            message,
            getattr(exc.os_error, "verify_code", None),
        )

    return ProbeFailure(FailureKind.OTHER, f"{type(exc).__name__}: {message}")


class Prober:
    """
    Issues exactly one GET per (domain, protocol) and classifies it.

    - Redirects are never followed; the Location header is inspected instead
    - Timeout, user agent and TLS floor come from the shared session
    - Only 200 bodies are read (for the default landing page check)
    """

    def __init__(self, session: aiohttp.ClientSession, config: ProbeConfig):
        self.session = session
        self.config = config

    async def observe(self, url: str) -> Observation:
        try:
            async with self.session.get(url, allow_redirects=False) as resp:
                body = b""
                if resp.status == 200:
                    body = await resp.read()
                return ProbeResponse(
                    status=resp.status,
                    headers=dict(resp.headers),
                    body=body.decode("utf-8", errors="replace"),
                )
        except Exception as e:
            return failure_from_exception(e)

    async def probe(self, domain: Domain, protocol: Protocol) -> Outcome:
        url = protocol.url_for(domain.hostname)
        observation = await self.observe(url)
        outcome = classify(protocol, domain.hostname, observation, self.config.landing_page_marker)

        if outcome.kind is OutcomeKind.TIMEOUT:
            logger.warning("Timeout: %s", url)
        elif outcome.kind is OutcomeKind.OTHER_ERROR:
            logger.error("Error: %s: %s", url, outcome.detail)
        else:
            logger.debug("%s -> %s %s", url, outcome.kind.value, outcome.status_code or "")
        return outcome

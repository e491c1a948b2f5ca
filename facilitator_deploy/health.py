from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from .errors import HealthCheckTimeout

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HealthStatus:
    url: str
    healthy: bool
    status_code: Optional[int] = None
    error: Optional[str] = None


def probe_once(client: httpx.Client, url: str) -> HealthStatus:
    try:
        r = client.get(url)
    except httpx.HTTPError as e:
        return HealthStatus(url=url, healthy=False, error=str(e) or type(e).__name__)
    healthy = 200 <= r.status_code < 300
    return HealthStatus(
        url=url,
        healthy=healthy,
        status_code=r.status_code,
        error=None if healthy else f"HTTP {r.status_code}",
    )


def check_health(url: str, *, timeout: float = 3.0, client: Optional[httpx.Client] = None) -> HealthStatus:
    if client is not None:
        return probe_once(client, url)
    with httpx.Client(timeout=timeout) as c:
        return probe_once(c, url)


def wait_healthy(
    url: str,
    *,
    max_retries: int = 15,
    interval: float = 4.0,
    timeout: float = 3.0,
    client: Optional[httpx.Client] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Poll ``url`` at a fixed interval; never raises on exhaustion.

    A fresh facilitator can take a while to come up, so running out of
    attempts is reported as a warning and the caller carries on.
    """

    own_client = client is None
    c = client or httpx.Client(timeout=timeout)
    try:
        last: Optional[HealthStatus] = None
        for attempt in range(1, max_retries + 1):
            last = probe_once(c, url)
            if last.healthy:
                logger.info("Facilitator is healthy (attempt %d/%d)", attempt, max_retries)
                return True
            logger.debug("Health attempt %d/%d: %s", attempt, max_retries, last.error)
            if attempt < max_retries:
                sleep(interval)
    finally:
        if own_client:
            c.close()

    timeout_err = HealthCheckTimeout(url, max_retries, max_retries * interval)
    logger.warning("%s", timeout_err)
    if last is not None and last.error:
        logger.warning("Last error: %s", last.error)
    logger.warning("This is normal on first boot. Check: fctl logs")
    return False

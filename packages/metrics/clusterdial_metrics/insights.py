"""New Relic Insights query adapter producing cluster snapshots."""

from __future__ import annotations

import json
import logging
import os
import ssl
import urllib.error
import urllib.parse
import urllib.request
from typing import Any

from .models import ClusterSnapshot, FetchFailure, FetchResult, FetchSuccess, ratio_to_percent

try:
    import certifi
except Exception:  # pragma: no cover - fallback when optional dependency unavailable
    certifi = None


INSIGHTS_BASE_URL = "https://insights-api.newrelic.com/v1/accounts"

_LOGGER = logging.getLogger("clusterdial.metrics")


def _build_ssl_context() -> ssl.SSLContext:
    ca_bundle = os.environ.get("CLUSTERDIAL_CA_BUNDLE", "").strip()
    if ca_bundle:
        return ssl.create_default_context(cafile=ca_bundle)

    if certifi is not None:
        return ssl.create_default_context(cafile=certifi.where())

    return ssl.create_default_context()


def parse_insights_payload(payload: Any) -> ClusterSnapshot:
    """Extract the first event of the first result and convert its ratios to percents.

    Raises KeyError, IndexError, TypeError, ValueError or OverflowError when the payload does not
    carry all three ratios.
    """
    event = payload["results"][0]["events"][0]
    return ClusterSnapshot.from_percents(
        cpu=ratio_to_percent(event["cpus.percent"]),
        mem=ratio_to_percent(event["mem.percent"]),
        disk=ratio_to_percent(event["disk.percent"]),
    )


class InsightsSource:
    """Runs one NRQL query per fetch; every failure becomes a FetchFailure."""

    def __init__(
        self,
        account_id: str | None,
        query: str | None,
        query_key: str | None,
        timeout_s: float = 30,
        base_url: str = INSIGHTS_BASE_URL,
    ) -> None:
        self.account_id = account_id
        self.query = query
        self.query_key = query_key
        self.timeout_s = timeout_s
        self.base_url = base_url.rstrip("/")

    def url(self) -> str:
        # Queries carried over from older deployments are often already percent-encoded.
        nrql = urllib.parse.quote(urllib.parse.unquote(self.query or ""), safe="")
        return f"{self.base_url}/{self.account_id}/query?nrql={nrql}"

    def _missing_settings(self) -> list[str]:
        missing = []
        if not self.account_id:
            missing.append("account_id")
        if not self.query:
            missing.append("query")
        if not self.query_key:
            missing.append("query_key")
        return missing

    def _fail(self, reason: str) -> FetchFailure:
        _LOGGER.warning("metrics fetch failed: %s", reason, extra={"event": "fetch_failed"})
        return FetchFailure(reason=reason)

    def fetch(self) -> FetchResult:
        missing = self._missing_settings()
        if missing:
            return self._fail(f"missing insights settings: {', '.join(missing)}")

        url = self.url()
        _LOGGER.info("calling insights account=%s", self.account_id, extra={"event": "fetch_start"})
        req = urllib.request.Request(
            url,
            headers={
                "X-Query-Key": str(self.query_key),
                "Accept": "application/json",
            },
        )

        try:
            with urllib.request.urlopen(req, timeout=self.timeout_s, context=_build_ssl_context()) as resp:
                status = int(getattr(resp, "status", 200))
                body = resp.read().decode("utf-8", errors="replace")
        except urllib.error.HTTPError as exc:
            return self._fail(f"insights returned status {exc.code}")
        except (urllib.error.URLError, OSError) as exc:
            return self._fail(f"insights request error: {exc}")

        if not 200 <= status < 300:
            return self._fail(f"insights returned status {status} body={body[:200]}")

        try:
            snapshot = parse_insights_payload(json.loads(body))
        except (KeyError, IndexError, TypeError, ValueError, OverflowError) as exc:
            return self._fail(f"malformed insights payload: {exc!r}")

        _LOGGER.info(
            "metrics cpu=%s mem=%s disk=%s",
            snapshot.cpu.percent,
            snapshot.mem.percent,
            snapshot.disk.percent,
            extra={"event": "fetch_ok"},
        )
        return FetchSuccess(snapshot=snapshot)

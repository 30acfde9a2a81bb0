# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Synchronous client for the Lift decision API (agents, points, decisions, reports).

Every endpoint is ``{api_url}/{owner_code}{path}`` with ``apikey={admin_key}``
appended to the query string. Writes succeed on HTTP 200 (plus a JSON
``{"status": "ok"}`` body where the API returns one); anything else raises
``DecisionApiError``. Single-object reads return None on a non-200 answer.

No retry or backoff: callers decide whether to retry.

Usage:
    with DecisionApiClient.from_settings(settings) as api:
        if api.ping_test():
            agents = api.get_existing_agents()
"""

from __future__ import annotations

import calendar
import logging
import re
from collections.abc import Callable, Iterable, Mapping
from datetime import date, datetime
from typing import Any
from urllib.parse import urlparse

import httpx

from .errors import CredentialsError, DecisionApiError
from .settings import LiftSettings

logger = logging.getLogger(__name__)

API_URL = "api.lift.acquia.com"
GET_REQUEST_TIMEOUT = 8.0
FEATURE_STRING_MAX_LENGTH = 50
FEATURE_STRING_SEPARATOR_MUTEX = ":"
FEATURE_STRING_SEPARATOR_NONMUTEX = "::"

_CODE_RE = re.compile(r"[0-9A-Za-z_-]+")
_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")

_ACCEPT_JSON = {"Accept": "application/json"}
_SEND_JSON = {"Content-Type": "application/json; charset=utf-8", "Accept": "application/json"}


def code_is_valid(value: str) -> bool:
    """True if ``value`` is usable as an owner code (letters, digits, ``_``, ``-``)."""
    return bool(_CODE_RE.fullmatch(value or ""))


def normalize_api_url(url: str, *, https: bool = True) -> str:
    """Default the host, add a scheme when missing, drop one trailing slash."""
    api_url = API_URL
    needs_scheme = True
    if url:
        if any(ch.isspace() for ch in url) or not urlparse(url if "://" in url else f"//{url}").hostname:
            raise CredentialsError("Decision API URL is not a valid URL.")
        api_url = url
        needs_scheme = "://" not in api_url
    if needs_scheme:
        api_url = ("https://" if https else "http://") + api_url
    if api_url.endswith("/"):
        api_url = api_url[:-1]
    return api_url


def _decode(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _is_numeric(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    if isinstance(value, str):
        try:
            float(value)
        except ValueError:
            return False
        return True
    return False


def convert_call_counts_to_total(counts: Mapping[str, int], exclude: Iterable[str] = ("other",)) -> int:
    """Sum call counts by type, skipping excluded types (reporting/admin calls by default)."""
    excluded = set(exclude)
    return sum(count for call_type, count in counts.items() if call_type not in excluded)


class DecisionApiClient:
    """Typed wrapper around the decision API REST endpoints."""

    def __init__(
        self,
        api_url: str = "",
        owner_code: str = "",
        admin_key: str = "",
        api_key: str = "",
        *,
        http_client: httpx.Client | None = None,
        https: bool = True,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._api_url = normalize_api_url(api_url, https=https)
        self._owner_code = owner_code
        self._admin_key = admin_key
        self._api_key = api_key
        self._owns_client = http_client is None
        self._http = http_client if http_client is not None else httpx.Client()
        self._today = today

    @classmethod
    def from_settings(cls, settings: LiftSettings, **kwargs: Any) -> DecisionApiClient:
        return cls(
            api_url=settings.api_url,
            owner_code=settings.owner_code,
            admin_key=settings.admin_key,
            api_key=settings.api_key,
            **kwargs,
        )

    # ── Lifecycle ─────────────────────────────────────────────────

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def __enter__(self) -> DecisionApiClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ── Accessors ─────────────────────────────────────────────────

    @property
    def api_url(self) -> str:
        return self._api_url

    @property
    def owner_code(self) -> str:
        return self._owner_code

    @property
    def admin_key(self) -> str:
        return self._admin_key

    @property
    def api_key(self) -> str:
        return self._api_key

    # ── Transport ─────────────────────────────────────────────────

    def generate_endpoint(self, path: str) -> str:
        """Fully qualified URL for ``path`` with owner code and admin API key applied."""
        endpoint = f"{self._api_url}/{self._owner_code}"
        if not path.startswith("/"):
            endpoint += "/"
        endpoint += path
        endpoint += "&" if "?" in endpoint else "?"
        return endpoint + f"apikey={self._admin_key}"

    def _send(
        self,
        method: str,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        url = self.generate_endpoint(path)
        kwargs: dict[str, Any] = {"headers": dict(headers or {})}
        if body is not None:
            kwargs["json"] = body
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            return self._http.request(method, url, **kwargs)
        except httpx.TransportError as e:
            raise DecisionApiError(f"{method} {path} failed: {e}") from e

    def _get(self, path: str, headers: Mapping[str, str] | None = None) -> httpx.Response:
        return self._send("GET", path, headers=headers or _ACCEPT_JSON, timeout=GET_REQUEST_TIMEOUT)

    def _write(
        self,
        method: str,
        path: str,
        *,
        success: str,
        failure: str,
        body: Any = None,
        headers: Mapping[str, str] | None = _SEND_JSON,
        require_ok: bool = True,
    ) -> None:
        response = self._send(method, path, headers=headers, body=body)
        ok = response.status_code == 200
        if ok and require_ok:
            data = _decode(response)
            ok = isinstance(data, dict) and data.get("status") == "ok"
        if not ok:
            logger.error("%s (status=%d)", failure, response.status_code)
            raise DecisionApiError(failure, status_code=response.status_code)
        logger.info(success)

    def _get_json_or_none(self, path: str) -> Any:
        response = self._get(path)
        if response.status_code == 200:
            return _decode(response)
        return None

    def _get_json_or_raise(self, path: str, message: str, headers: Mapping[str, str] | None = None) -> Any:
        response = self._get(path, headers)
        if response.status_code != 200:
            logger.error("%s (status=%d)", message, response.status_code)
            raise DecisionApiError(message, status_code=response.status_code)
        return _decode(response)

    # ── Connectivity ──────────────────────────────────────────────

    def ping_test(self) -> bool:
        """True if the list-agents endpoint answers 200 (no dedicated ping endpoint exists)."""
        response = self._send("GET", "/list-agents", headers=_ACCEPT_JSON)
        return response.status_code == 200

    # ── Agents, points, decisions, choices, goals ─────────────────

    def save_agent(
        self,
        machine_name: str,
        label: str,
        decision_style: str,
        status: str = "enabled",
        control_rate: float = 0.1,
        explore_rate: float = 0.2,
    ) -> None:
        """Create or update an agent. ``decision_style`` is 'random' or 'adaptive'."""
        agent = {
            "name": label,
            "selection-mode": decision_style,
            "status": status,
            "control-rate": control_rate,
            "explore-rate": explore_rate,
        }
        self._write(
            "PUT",
            f"/agent-api/{machine_name}",
            body=agent,
            success=f"The campaign {machine_name} was pushed to Acquia Lift",
            failure=f"The campaign {machine_name} could not be pushed to Acquia Lift",
        )

    def save_point(self, agent_name: str, point_name: str) -> None:
        self._write(
            "PUT",
            f"/agent-api/{agent_name}/points/{point_name}",
            success=f"The point {point_name} was pushed to the Acquia Lift campaign {agent_name}",
            failure=f"Could not save the point {point_name} to the Acquia Lift campaign {agent_name}",
        )

    def save_decision(self, agent_name: str, point_name: str, decision_name: str, data: Any = None) -> None:
        self._write(
            "PUT",
            f"/agent-api/{agent_name}/points/{point_name}/decisions/{decision_name}",
            body=data if data is not None else {},
            success=(
                f"The decision {decision_name} for point {point_name} "
                f"was pushed to the Acquia Lift campaign {agent_name}"
            ),
            failure=(
                f"Could not save decision {decision_name} for point {point_name} "
                f"to the Acquia Lift campaign {agent_name}"
            ),
        )

    def save_choice(
        self, agent_name: str, point_name: str, decision_name: str, choice: str, data: Any = None
    ) -> None:
        choice_name = f"{decision_name}: {choice}"
        self._write(
            "PUT",
            f"/agent-api/{agent_name}/points/{point_name}/decisions/{decision_name}/choices/{choice}",
            body=data if data is not None else {},
            success=(
                f"The decision choice {choice_name} for point {point_name} "
                f"was pushed to the Acquia Lift campaign {agent_name}"
            ),
            failure=(
                f"Could not save decision choice {choice_name} for point {point_name} "
                f"to the Acquia Lift campaign {agent_name}"
            ),
        )

    def save_goal(self, agent_name: str, goal_name: str, data: Any = None) -> None:
        self._write(
            "PUT",
            f"/agent-api/{agent_name}/goals/{goal_name}",
            body=data if data is not None else {},
            success=f"The goal {goal_name} was pushed to the Acquia Lift campaign {agent_name}",
            failure=f"Could not save the goal {goal_name} to the Acquia Lift campaign {agent_name}",
        )

    def reset_agent_data(self, agent_name: str) -> None:
        self._write(
            "DELETE",
            f"/{agent_name}/data",
            headers=None,
            require_ok=False,
            success=f"The data for Acquia Lift campaign {agent_name} was reset",
            failure=f"Could not reset data for Acquia Lift campaign {agent_name}",
        )

    def delete_agent(self, agent_name: str) -> None:
        self._write(
            "DELETE",
            f"/agent-api/{agent_name}",
            headers=None,
            require_ok=False,
            success=f"The Acquia Lift campaign {agent_name} was deleted",
            failure=f"Could not delete Acquia Lift campaign {agent_name}",
        )

    def delete_point(self, agent_name: str, point_name: str) -> None:
        self._write(
            "DELETE",
            f"/agent-api/{agent_name}/points/{point_name}",
            headers=None,
            success=f"The decision point {point_name} was deleted from the Acquia Lift campaign {agent_name}",
            failure=f"Could not delete decision point {point_name} from the Acquia Lift campaign {agent_name}",
        )

    def delete_decision(self, agent_name: str, point_name: str, decision_name: str) -> None:
        self._write(
            "DELETE",
            f"/agent-api/{agent_name}/points/{point_name}/decisions/{decision_name}",
            headers=None,
            success=(
                f"The decision {decision_name} for point {point_name} "
                f"was deleted from the Acquia Lift campaign {agent_name}"
            ),
            failure=(
                f"Could not delete decision {decision_name} for point {point_name} "
                f"from the Acquia Lift campaign {agent_name}"
            ),
        )

    def delete_choice(self, agent_name: str, point_name: str, decision_name: str, choice: str) -> None:
        choice_name = f"{decision_name}: {choice}"
        self._write(
            "DELETE",
            f"/agent-api/{agent_name}/points/{point_name}/decisions/{decision_name}/choices/{choice}",
            headers=None,
            success=(
                f"The decision choice {choice_name} for point {point_name} "
                f"was deleted from the Acquia Lift campaign {agent_name}"
            ),
            failure=(
                f"Could not delete decision choice {choice_name} for point {point_name} "
                f"from the Acquia Lift campaign {agent_name}"
            ),
        )

    def get_agent(self, machine_name: str) -> Any:
        return self._get_json_or_none(f"/agent-api/{machine_name}")

    def get_goals_for_agent(self, agent_name: str) -> Any:
        return self._get_json_or_none(f"/agent-api/{agent_name}/goals")

    def get_points_for_agent(self, agent_name: str) -> Any:
        return self._get_json_or_none(f"/agent-api/{agent_name}/points")

    def get_decisions_for_point(self, agent_name: str, point_name: str) -> Any:
        return self._get_json_or_none(f"/agent-api/{agent_name}/points/{point_name}/decisions")

    def get_choices_for_decision(self, agent_name: str, point_name: str, decision_name: str) -> Any:
        return self._get_json_or_none(f"/agent-api/{agent_name}/points/{point_name}/decisions/{decision_name}/choices")

    def get_existing_agents(self) -> dict[str, dict[str, Any]]:
        """Existing agents keyed by agent code."""
        data = self._get_json_or_raise("/list-agents", "Error retrieving agent list from Acquia Lift")
        agents = ((data or {}).get("data") or {}).get("agents") if isinstance(data, dict) else None
        if not agents:
            return {}
        return {agent["code"]: agent for agent in agents}

    def ensure_unique_agent_name(self, agent_name: str, max_length: int) -> str:
        """Shorten ``agent_name`` to fit and add a ``-N`` suffix until no existing agent uses it."""
        max_length = min(max_length, FEATURE_STRING_MAX_LENGTH)
        agent_name = agent_name[:max_length]

        existing = self.get_existing_agents()
        index = 0
        suffix = ""
        while agent_name + suffix in existing:
            suffix = f"-{index}"
            while len(agent_name + suffix) > max_length:
                agent_name = agent_name[:-1]
            index += 1
        return agent_name + suffix

    # ── Targeting ─────────────────────────────────────────────────

    def get_transform_options(self) -> Any:
        data = self._get_json_or_raise("/transforms-options", "Error retrieving list of transforms options")
        return data["data"]["options"]

    def save_auto_targeting_rule(self, agent_name: str, auto_features: Iterable[str]) -> None:
        body = {
            "code": f"{agent_name}-auto-targeting",
            "status": 1,
            "agents": [agent_name],
            "when": [],
            "apply": {"feature": ",".join(f"#{feature}" for feature in auto_features)},
        }
        self._write(
            "POST",
            "/transform-rule",
            body=body,
            require_ok=False,
            success=f"The targeting rule for campaign {agent_name} was saved successfully",
            failure=f"The targeting rule could not be saved for campaign {agent_name}",
        )

    def delete_auto_targeting_rule(self, agent_name: str) -> None:
        self._write(
            "DELETE",
            f"/transform-rule/{agent_name}-auto-targeting",
            require_ok=False,
            success=f"The targeting rule for campaign {agent_name} was deleted successfully",
            failure=f"The targeting rule could not be deleted for campaign {agent_name}",
        )

    def get_potential_targeting_values(self, agent_name: str) -> Any:
        return self._get_json_or_raise(
            f"/-/potential-targeting?agent={agent_name}&include-current=true",
            "Problem retrieving potential targeting values",
        )

    def get_possible_values(
        self,
        agent_name: str,
        mutex_separator: str | None = None,
        non_mutex_separator: str | None = None,
    ) -> dict[str, dict[str, Any]]:
        """Group potential targeting features by name.

        Returns ``{name: {"value type", "mutex", "friendly name", "values": {code: label}}}``.
        Codes look like ``name:value`` (mutually exclusive) or ``name::value``.
        """
        mutex_separator = mutex_separator or FEATURE_STRING_SEPARATOR_MUTEX
        non_mutex_separator = non_mutex_separator or FEATURE_STRING_SEPARATOR_NONMUTEX

        result = self.get_potential_targeting_values(agent_name)
        potential = ((result or {}).get("data") or {}).get("potential") or {} if isinstance(result, dict) else {}
        features = potential.get("features")
        if not features:
            return {}

        # One separator may contain the other; test for the longer one.
        check = mutex_separator if non_mutex_separator in mutex_separator else non_mutex_separator

        possible_values: dict[str, dict[str, Any]] = {}
        for feature in features:
            code = feature["code"]
            if check in code:
                mutex = check == mutex_separator
            else:
                mutex = check == non_mutex_separator
            separated = code.split(mutex_separator if mutex else non_mutex_separator)
            if len(separated) != 2:
                continue
            name, value = (part.strip() for part in separated)
            entry = possible_values.setdefault(
                name,
                {
                    "value type": "predefined",
                    "mutex": mutex,
                    "friendly name": feature.get("typeName", name),
                    "values": {},
                },
            )
            entry["values"][value] = feature["name"]
        return possible_values

    def save_fixed_targeting_mapping(self, agent_name: str, point_name: str, mapping: list[dict[str, str]]) -> None:
        """Save explicit targeting: entries of ``{"feature": ..., "decision": "decision_name:option_id"}``."""
        self._write(
            "PUT",
            f"/agent-api/{agent_name}/points/{point_name}/fixed-targeting",
            body=mapping,
            success=(
                f"The fixed targeting mapping for point {point_name} was successfully saved for campaign {agent_name}"
            ),
            failure=f"The fixed targeting mapping for point {point_name} could not be saved for campaign {agent_name}",
        )

    # ── Reports ───────────────────────────────────────────────────

    def date_string(self, date_start: str | None, date_end: str | None = None) -> str:
        """``/{start}[/{end}]``; an invalid or missing start means today, an invalid end is dropped."""
        if date_start is None or not _DATE_RE.search(date_start):
            date_start = self._today().strftime("%Y-%m-%d")
        result = f"/{date_start}"
        if date_end is not None and _DATE_RE.search(date_end):
            result += f"/{date_end}"
        return result

    @staticmethod
    def _point_headers(point: str | None) -> dict[str, str]:
        headers = dict(_ACCEPT_JSON)
        if point is not None:
            headers["x-mpath-point"] = point
        return headers

    def get_targeting_impact_report(
        self,
        agent_name: str,
        date_start: str | None = None,
        date_end: str | None = None,
        point: str | None = None,
    ) -> Any:
        return self._get_json_or_raise(
            f"/{agent_name}/report/targeting-features{self.date_string(date_start, date_end)}",
            "Problem retrieving targeting impact report.",
            self._point_headers(point),
        )

    def get_agent_status_report(self, agent_names: Iterable[str], num_days: Any = None) -> Any:
        codes = ",".join(agent_names)
        days = f"&days={num_days}" if num_days is not None and _is_numeric(num_days) else ""
        return self._get_json_or_raise(
            f"/report/status?codes={codes}{days}",
            "Problem retrieving agent status report.",
        )

    def get_confidence_report(
        self,
        agent_name: str,
        date_start: str | None = None,
        date_end: str | None = None,
        point: str | None = None,
        features: Iterable[str] | str | None = None,
        confidence_measure: float = 0.95,
    ) -> Any:
        """Option confidence report. ``features="all"`` includes every feature; None means "(none)"."""
        if features == "all":
            feature_str = ""
        elif features is None:
            feature_str = "(none)"
        else:
            feature_str = ",".join(features)
        path = (
            f"/{agent_name}/report/confidence{self.date_string(date_start, date_end)}"
            f"?features={feature_str}&confidence-measure={confidence_measure}"
        )
        return self._get_json_or_raise(path, "Problem retrieving confidence report.", self._point_headers(point))

    def get_raw_learning_report(
        self,
        agent_name: str,
        date_start: str | None = None,
        date_end: str | None = None,
        point: str | None = None,
    ) -> Any:
        return self._get_json_or_raise(
            f"/{agent_name}/report/learning{self.date_string(date_start, date_end)}",
            "Problem retrieving learning report.",
            self._point_headers(point),
        )

    # ── Usage ─────────────────────────────────────────────────────

    def get_api_calls_for_period(self, date_start: str, date_end: str) -> dict[str, int]:
        """Runtime call counts by type, e.g. ``{"decisions": 1000, "goals": 100, "other": 10}``."""
        response = self._send(
            "GET",
            f"/-/report/system-usage{self.date_string(date_start, date_end)}",
            headers=_ACCEPT_JSON,
        )
        if response.status_code != 200:
            message = "Problem retrieving API call counts."
            logger.error("%s (status=%d)", message, response.status_code)
            raise DecisionApiError(message, status_code=response.status_code)
        result = _decode(response)
        try:
            return dict(result["data"][0]["calls"])
        except (KeyError, IndexError, TypeError):
            return {}

    def get_calls_for_previous_month(self, timestamp: float) -> dict[str, int]:
        current = datetime.fromtimestamp(timestamp)
        if current.month == 1:
            year, month = current.year - 1, 12
        else:
            year, month = current.year, current.month - 1
        days = calendar.monthrange(year, month)[1]
        return self.get_api_calls_for_period(f"{year}-{month:02d}-01", f"{year}-{month:02d}-{days:02d}")

    def get_total_runtime_calls_for_previous_month(self, timestamp: float) -> int:
        return convert_call_counts_to_total(self.get_calls_for_previous_month(timestamp))

    def get_calls_for_month_to_date(self, timestamp: float) -> dict[str, int]:
        current = datetime.fromtimestamp(timestamp)
        return self.get_api_calls_for_period(current.strftime("%Y-%m-01"), current.strftime("%Y-%m-%d"))

    def get_total_runtime_calls_for_month_to_date(self, timestamp: float) -> int:
        return convert_call_counts_to_total(self.get_calls_for_month_to_date(timestamp))

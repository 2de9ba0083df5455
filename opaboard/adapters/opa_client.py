import json
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
TICKET_POPULATE = ["id_cliente", "id_atendente", "id_motivo_atendimento", "setor", "id_contato"]


class UpstreamError(RuntimeError):
    """Raised when the upstream API answers with an error or unreadable body."""


@dataclass
class RawBatch:
    """
    One refresh worth of raw upstream records, in the proxy payload shape.
    """
    tickets: List[Dict[str, Any]] = field(default_factory=list)
    attendants: List[Dict[str, Any]] = field(default_factory=list)
    departments: List[Dict[str, Any]] = field(default_factory=list)
    clients: List[Dict[str, Any]] = field(default_factory=list)
    contacts: List[Dict[str, Any]] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "tickets": self.tickets,
            "attendants": self.attendants,
            "departments": self.departments,
            "clients": self.clients,
            "contacts": self.contacts,
        }


def normalize_base_url(base_url: str) -> str:
    url = (base_url or "").strip().rstrip("/")
    if url and API_PREFIX not in url:
        url += API_PREFIX
    return url


def loopback_filter(
    where: Optional[Dict[str, Any]] = None,
    limit: int = 1000,
    skip: int = 0,
    sort: Optional[str] = None,
    populate: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """
    Build the LoopBack-style `filter` query the upstream expects.

    sort "-field" means descending; default order is newest first.
    """
    if sort:
        order = f"{sort[1:]} DESC" if sort.startswith("-") else f"{sort} ASC"
    else:
        order = "_id DESC"
    return {
        "where": where or {},
        "limit": int(limit),
        "skip": int(skip),
        "order": order,
        "include": list(populate or []),
    }


def extract_list(data: Any) -> List[Dict[str, Any]]:
    if isinstance(data, dict):
        data = data.get("data")
    if isinstance(data, list):
        return data
    return []


class OpaClient:
    """
    Read-only client for the helpdesk REST API using bearer-token auth.
    Authorization: Bearer <token>
    """

    def __init__(
        self,
        *,
        base_url: str,
        token: Optional[str] = None,
        token_env: str = "OPABOARD_API_TOKEN",
        timeout_seconds: int = 30,
        verify_ssl: bool = True,
        fetch_departments: bool = True,
    ) -> None:
        self.base_url = normalize_base_url(base_url)
        if not self.base_url:
            raise RuntimeError("Missing upstream base_url.")

        if token is None or not str(token).strip():
            token = os.environ.get(token_env, "")
        token = str(token).strip()
        if not token:
            raise RuntimeError(
                "Missing upstream API token. Set upstream.token in config/config.yaml "
                f"or set the environment variable {token_env}."
            )

        self.timeout_seconds = int(timeout_seconds)
        self.fetch_departments = fetch_departments

        self.session = requests.Session()
        self.session.verify = bool(verify_ssl)
        self.session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
            }
        )

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        if not path.startswith("/"):
            path = "/" + path
        # Some saved URLs already point at the resource itself.
        if self.base_url.endswith(path):
            return self.base_url
        return f"{self.base_url}{path}"

    def _raise_for_status(self, resp: requests.Response, *, context: str) -> None:
        if resp.status_code == 401:
            raise UpstreamError(f"Upstream 401 Unauthorized - check API token. ({context})")
        if resp.status_code >= 400:
            raise UpstreamError(
                f"Upstream API error ({context}). HTTP {resp.status_code}: {resp.text}"
            )

    def list_records(
        self,
        path: str,
        *,
        where: Optional[Dict[str, Any]] = None,
        limit: int = 1000,
        skip: int = 0,
        sort: Optional[str] = None,
        populate: Optional[List[str]] = None,
    ) -> List[Dict[str, Any]]:
        params = {
            "filter": json.dumps(
                loopback_filter(where=where, limit=limit, skip=skip, sort=sort, populate=populate)
            )
        }
        try:
            resp = self.session.get(self._url(path), params=params, timeout=self.timeout_seconds)
        except requests.RequestException as e:
            raise UpstreamError(f"Upstream request failed ({path}): {e}") from e

        self._raise_for_status(resp, context=f"list_records({path})")
        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamError(f"Upstream returned invalid JSON ({path})") from e
        return extract_list(data)

    # ---------------------------
    # Resources
    # ---------------------------

    def list_active_tickets(self, limit: int = 500) -> List[Dict[str, Any]]:
        return self.list_records(
            "/atendimento", where={"status": {"neq": "F"}}, limit=limit, populate=TICKET_POPULATE
        )

    def list_finished_tickets(self, limit: int = 1000) -> List[Dict[str, Any]]:
        return self.list_records(
            "/atendimento", where={"status": "F"}, limit=limit, sort="-_id", populate=TICKET_POPULATE
        )

    def list_attendants(self, limit: int = 200) -> List[Dict[str, Any]]:
        return self.list_records("/usuario", where={"status": "A"}, limit=limit)

    def list_clients(self, limit: int = 500) -> List[Dict[str, Any]]:
        return self.list_records("/cliente", limit=limit, sort="-_id")

    def list_contacts(self, limit: int = 500) -> List[Dict[str, Any]]:
        return self.list_records("/contato", limit=limit, sort="-_id")

    def list_departments(self, limit: int = 200) -> List[Dict[str, Any]]:
        return self.list_records("/departamento", limit=limit)

    # ---------------------------
    # Dashboard batch
    # ---------------------------

    def fetch_dashboard_data(self) -> RawBatch:
        """
        Fetch everything one refresh needs, in parallel.

        A failing call is logged and contributes an empty list; the other
        lists are still returned.
        """
        calls = {
            "active": self.list_active_tickets,
            "history": self.list_finished_tickets,
            "attendants": self.list_attendants,
            "clients": self.list_clients,
            "contacts": self.list_contacts,
        }
        if self.fetch_departments:
            calls["departments"] = self.list_departments

        results: Dict[str, List[Dict[str, Any]]] = {}
        errors: Dict[str, str] = {}
        with ThreadPoolExecutor(max_workers=len(calls)) as executor:
            futures = {name: executor.submit(fn) for name, fn in calls.items()}
            for name, future in futures.items():
                try:
                    results[name] = future.result()
                    logger.info("Upstream %s returned %d item(s)", name, len(results[name]))
                except UpstreamError as exc:
                    logger.warning("Upstream %s failed: %s", name, exc)
                    errors[name] = str(exc)
                    results[name] = []

        return RawBatch(
            tickets=results["active"] + results["history"],
            attendants=results["attendants"],
            departments=results.get("departments", []),
            clients=results["clients"],
            contacts=results["contacts"],
            errors=errors,
        )

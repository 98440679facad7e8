"""
REST client for the commission API.
Every call goes through one requests.Session built from an AppConfig.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import requests

from app_config import AppConfig
from commission_grid import Product
from commission_simulation import StaffMember, build_simulation_request


class ApiError(Exception):
    """Transport failure, non-2xx status or unreadable body"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CommissionApiClient:
    def __init__(self, config: AppConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.base_url = config.api_base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.logger = logging.getLogger(__name__)

    def _build_url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def _request(self, method: str, endpoint: str, payload: Optional[Dict] = None) -> Any:
        url = self._build_url(endpoint)
        self.logger.debug("%s %s payload=%s", method, url, payload)
        try:
            response = self.session.request(method, url, json=payload, timeout=self.config.request_timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            status = e.response.status_code if e.response is not None else None
            raise ApiError(f"{method} {url} failed: {e}", status_code=status) from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"{method} {url} returned a non-JSON body", status_code=response.status_code) from e

    # -----------------------------
    # Produits
    # -----------------------------
    def list_products(self) -> List[Product]:
        data = self._request("GET", "/api/products")
        return [Product.from_api(item) for item in data or []]

    def update_commission_bulk(self, product_ids: Sequence[str], commission_percent: int) -> List[Product]:
        """Set one percent on several products; the server answers with the full list."""
        data = self._request(
            "PUT",
            "/api/products/commission-update",
            {"productIds": [str(pid) for pid in product_ids], "commissionPercent": commission_percent},
        )
        return [Product.from_api(item) for item in data or []]

    def update_commission(self, product_id: str, commission_percent: int) -> None:
        # response body is ignored, the caller patches its local copy
        self._request("PUT", f"/api/products/{product_id}/commission", {"commissionPercent": commission_percent})

    # -----------------------------
    # Simulation
    # -----------------------------
    def list_staff_members(self) -> List[StaffMember]:
        data = self._request("GET", "/api/staff-members")
        return [StaffMember.from_api(item) for item in data or []]

    def simulate_commissions(self, start: datetime, end: datetime, staff_member_id: str) -> Dict[str, Any]:
        data = self._request("POST", "/api/commissions/simulate", build_simulation_request(start, end, staff_member_id))
        return data or {}

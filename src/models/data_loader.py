"""
Loads raw orders and the branch listing from the remote order API.
Orders arrive nested as date -> branch -> product -> quantity and are
flattened into a DataFrame [date, branch, product, quantity] for aggregation.
"""

import logging
from typing import Any, Dict, List, Optional

import pandas as pd
import requests

from src.models.sales import DateRange
from src.services.exceptions import OrdersUnavailableError

logger = logging.getLogger(__name__)

ORDER_COLUMNS = ["date", "branch", "product", "quantity"]

RawOrders = Dict[str, Dict[str, Dict[str, Any]]]


def orders_to_frame(raw_orders: Optional[RawOrders]) -> pd.DataFrame:
    """
    Flatten nested orders into one row per (date, branch, product) in iteration order.
    Levels that are not mappings are ignored; quantities are left untouched.
    """
    rows = []
    if not isinstance(raw_orders, dict):
        return pd.DataFrame(rows, columns=ORDER_COLUMNS)
    for order_date, branches in raw_orders.items():
        if not isinstance(branches, dict):
            continue
        for branch, products in branches.items():
            if not isinstance(products, dict):
                continue
            for product, quantity in products.items():
                rows.append((str(order_date), str(branch), str(product), quantity))
    return pd.DataFrame(rows, columns=ORDER_COLUMNS)


class OrdersClient:
    """
    Thin HTTP client for the order API. Failures are raised as OrdersUnavailableError;
    nothing is retried.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[int] = None, session=None):
        if base_url is None or timeout is None:
            from config.settings import ORDERS_API_BASE, ORDERS_API_TIMEOUT
            base_url = base_url or ORDERS_API_BASE
            timeout = timeout or ORDERS_API_TIMEOUT
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get(self, path: str, params: Optional[Dict[str, str]] = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            r = self.session.get(url, params=params, timeout=self.timeout)
            r.raise_for_status()
            return r.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("Order API call failed: GET %s (%s)", url, e)
            raise OrdersUnavailableError(f"Order API call failed: {e}") from e

    def list_branches(self) -> List[Dict[str, Any]]:
        """Branches as [{id, name, type}]."""
        data = self._get("/branches")
        if not isinstance(data, list):
            raise OrdersUnavailableError("Branch listing is not a list")
        return data

    def fetch_orders(self, date_range: DateRange) -> RawOrders:
        """Orders for the inclusive range, keyed date -> branch -> product -> quantity."""
        data = self._get("/orders", params=date_range.to_dict())
        if not isinstance(data, dict):
            raise OrdersUnavailableError("Orders payload is not an object")
        logger.info("Fetched orders for %d day(s) %s..%s", len(data), date_range.start_date, date_range.end_date)
        return data

"""
Synchronous HTTP client for the ProcureHub REST API.

Any ``httpx.Client`` can be injected (including FastAPI's TestClient), which
is how the BOM builder is exercised end to end.
"""
from typing import Any, Iterable, List, Optional, Union

import httpx
from pydantic import BaseModel

from procurehub.core.logging import get_logger
from procurehub.schemas.catalog import BomCreate, BomItemCreate, BomWithItemsCreate

logger = get_logger(__name__)

HTTP_TIMEOUT = 30.0
LOGIN_PATH = "/api/login"


class ApiError(Exception):
    """Base class for failures talking to the API."""

    def __init__(self, message: str, status_code: Optional[int] = None, detail: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class UnauthorizedError(ApiError):
    """The session is missing or expired; the user has to log in again."""

    def __init__(self, detail: Any = None, login_url: str = LOGIN_PATH):
        super().__init__(f"401: Unauthorized - {detail}", status_code=401, detail=detail)
        self.login_url = login_url


class ApiRequestError(ApiError):
    """Any other non-success response, or a transport failure (status_code is None)."""


def is_unauthorized_error(exc: BaseException) -> bool:
    return isinstance(exc, ApiError) and exc.status_code == 401


def _payload(data: Union[BaseModel, dict]) -> dict:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", exclude_none=True)
    return data


class ProcurementClient:
    """Bearer-authenticated wrapper around the endpoints the client workflows need."""

    def __init__(
        self,
        base_url: str = "",
        token: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
        timeout: float = HTTP_TIMEOUT,
    ):
        self.token = token
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(
            base_url=base_url,
            timeout=httpx.Timeout(timeout, connect=5.0),
        )

    def close(self):
        if self._owns_client:
            self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _headers(self) -> dict:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def _request(self, method: str, path: str, json: Optional[dict] = None, params: Optional[dict] = None):
        try:
            response = self._http.request(
                method, path, json=json, params=params, headers=self._headers()
            )
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise ApiRequestError(f"Request error: {e}") from e

        if response.status_code == 401:
            raise UnauthorizedError(self._detail(response))
        if response.status_code >= 400:
            detail = self._detail(response)
            raise ApiRequestError(
                f"{response.status_code}: {detail}",
                status_code=response.status_code,
                detail=detail,
            )

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    @staticmethod
    def _detail(response: httpx.Response) -> Any:
        try:
            body = response.json()
        except ValueError:
            return response.text or response.reason_phrase
        if isinstance(body, dict) and "detail" in body:
            return body["detail"]
        return body

    # ============= CATALOGUE =============

    def list_products(
        self,
        is_active: Optional[bool] = True,
        category: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[dict]:
        params = {}
        if is_active is not None:
            params["is_active"] = str(is_active).lower()
        if category:
            params["category"] = category
        if search:
            params["search"] = search
        return self._request("GET", "/api/products", params=params)

    # ============= BOMS =============

    def create_bom(self, header: Union[BomCreate, dict]) -> dict:
        return self._request("POST", "/api/boms", json=_payload(header))

    def add_bom_item(self, bom_id: int, item: Union[BomItemCreate, dict]) -> dict:
        return self._request("POST", f"/api/boms/{bom_id}/items", json=_payload(item))

    def delete_bom(self, bom_id: int) -> None:
        self._request("DELETE", f"/api/boms/{bom_id}")

    def get_bom(self, bom_id: int) -> dict:
        return self._request("GET", f"/api/boms/{bom_id}")

    def create_bom_with_items(
        self,
        header: Union[BomCreate, dict],
        items: Iterable[Union[BomItemCreate, dict]],
    ) -> dict:
        header_data = header.model_dump() if isinstance(header, BaseModel) else dict(header)
        body = BomWithItemsCreate(
            **header_data,
            items=[i if isinstance(i, BomItemCreate) else BomItemCreate(**i) for i in items],
        )
        return self._request("POST", "/api/boms/full", json=_payload(body))

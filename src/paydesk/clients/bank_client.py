"""
Bank Client
Async HTTP client for the bank REST API consumed by the transfer flow.

Every response is wrapped as ``{"data": ...}``; error responses carry
``{"message": "...", "code": "..."}``.
"""

from typing import Any, Dict, List, Optional

import httpx

from paydesk.config import DEFAULT_API_BASE_URL
from paydesk.errors import BankApiError, BankUnavailableError
from paydesk.logging_config import get_logger
from paydesk.schemas import (
    BankAccount,
    Beneficiary,
    BeneficiaryCreate,
    Card,
    CardStatus,
    Transfer,
    TransferPayload,
    Upi,
    UpiStatus,
)

logger = get_logger("paydesk.bank_client")


def _error_details(resp: httpx.Response) -> Dict[str, Optional[str]]:
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("message") or body.get("error") or body.get("detail")
        return {"message": str(message) if message else None, "code": body.get("code")}
    return {"message": resp.text or None, "code": None}


class BankClient:
    """
    HTTP client for the bank API.

    The underlying ``httpx.AsyncClient`` keeps the session cookie between calls.
    Pass ``transport`` to route requests somewhere other than the network.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        cookies: Optional[Dict[str, str]] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            cookies=cookies,
            headers={"Content-Type": "application/json"},
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        """
        Issue a request and return the unwrapped ``data`` member of the response.
        """
        try:
            resp = await self._client.request(method, path, json=json)
        except httpx.RequestError as e:
            logger.error("Bank API %s %s unreachable: %s", method.upper(), path, e)
            raise BankUnavailableError("Bank API unreachable") from e

        logger.info("Bank API %s %s -> %s", method.upper(), path, resp.status_code)
        if resp.status_code >= 400:
            details = _error_details(resp)
            message = details["message"] or f"Bank API error: {resp.status_code}"
            logger.warning("Bank API %s %s rejected: %s", method.upper(), path, message)
            raise BankApiError(message, status_code=resp.status_code, code=details["code"])

        if not resp.content:
            return None
        body = resp.json()
        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    # ------------------------------------------------------------------
    # Read endpoints
    # ------------------------------------------------------------------
    async def get_accounts(self, user_id: int) -> List[BankAccount]:
        data = await self.request("GET", f"/users/{user_id}/accounts")
        return [BankAccount.model_validate(item) for item in data or []]

    async def get_upis(self, acc_no: str) -> List[Upi]:
        data = await self.request("GET", f"/accounts/{acc_no}/upi")
        return [Upi.model_validate(item) for item in data or []]

    async def get_cards(self, acc_no: str) -> List[Card]:
        data = await self.request("GET", f"/accounts/{acc_no}/card")
        return [Card.model_validate(item) for item in data or []]

    async def get_beneficiaries(self, user_id: int) -> List[Beneficiary]:
        data = await self.request("GET", f"/users/{user_id}/beneficiaries")
        return [Beneficiary.model_validate(item) for item in data or []]

    async def get_transfers(self) -> List[Transfer]:
        data = await self.request("GET", "/transfers")
        return [Transfer.model_validate(item) for item in data or []]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    async def create_transfer(self, payload: TransferPayload) -> Transfer:
        data = await self.request("POST", "/transfers", json=payload.to_wire())
        return Transfer.model_validate(data)

    async def create_beneficiary(self, user_id: int, beneficiary: BeneficiaryCreate) -> Beneficiary:
        body = beneficiary.model_dump(by_alias=True)
        body["beneficiaryOfUserId"] = user_id
        data = await self.request("POST", f"/users/{user_id}/beneficiaries", json=body)
        return Beneficiary.model_validate(data)

    async def update_upi_status(self, acc_no: str, upi_id: str, status: UpiStatus) -> None:
        await self.request("PUT", f"/accounts/{acc_no}/upi/{upi_id}/status", json={"status": status.value})

    async def update_card_status(self, acc_no: str, card_no: str, status: CardStatus) -> None:
        await self.request("PUT", f"/accounts/{acc_no}/card/{card_no}/status", json={"status": status.value})

    async def close_account(self, user_id: int, acc_no: str) -> None:
        await self.request("POST", f"/users/{user_id}/accounts/{acc_no}/close")

    async def post(self, path: str, json: Dict[str, Any]) -> Any:
        return await self.request("POST", path, json=json)

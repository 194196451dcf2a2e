"""External execution process that performs the purchase steps."""

import json
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

import httpx
import structlog
from pydantic import ValidationError

from sweepbuy.errors import ExecutionFailedError
from sweepbuy.state.models import ExecutionStep, PurchaseRequest, Signer

logger = structlog.get_logger()

StepsCallback = Callable[[list[ExecutionStep]], Any]
SuccessCallback = Callable[[], Any]
ErrorCallback = Callable[[Exception], Any]


class ExecutionProcess(ABC):
    """Runs a purchase request and reports its steps through callbacks."""

    @abstractmethod
    async def execute(
        self,
        request: PurchaseRequest,
        signer: Signer,
        api_base: str,
        on_steps: StepsCallback,
        on_success: SuccessCallback,
        on_error: ErrorCallback,
    ) -> None:
        """Execute the request.

        Args:
            request: Items to buy and the buyer
            signer: Signer handle the backend signs with
            api_base: Base URL of the execution backend
            on_steps: Called with the full step list whenever it changes
            on_success: Called once when the purchase completes
            on_error: Called once when the purchase fails
        """
        pass


class HttpExecutionProcess(ExecutionProcess):
    """Execution backend speaking newline-delimited JSON over HTTP.

    Each line of the response body is one of:
        {"steps": [{"status": "incomplete", "message": "..."}, ...]}
        {"status": "success"}
        {"error": "<reason>"}
    """

    EXECUTE_PATH = "/execute/buy"

    def __init__(
        self,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self._transport = transport

    async def execute(
        self,
        request: PurchaseRequest,
        signer: Signer,
        api_base: str,
        on_steps: StepsCallback,
        on_success: SuccessCallback,
        on_error: ErrorCallback,
    ) -> None:
        url = f"{api_base.rstrip('/')}{self.EXECUTE_PATH}"
        logger.info("Executing purchase", url=url, buyer=request.buyer, items=len(request.items))

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            async with client.stream(
                "POST",
                url,
                json=request.to_payload(),
                headers={"X-Signer-Address": signer.address},
            ) as response:
                if response.status_code >= 400:
                    body = (await response.aread()).decode(errors="replace")
                    raise ExecutionFailedError(
                        f"Execution backend returned {response.status_code}",
                        details={"status": response.status_code, "body": body[:500]},
                    )

                async for line in response.aiter_lines():
                    line = line.strip()
                    if line:
                        self._dispatch(line, on_steps, on_success, on_error)

    @staticmethod
    def _dispatch(
        line: str,
        on_steps: StepsCallback,
        on_success: SuccessCallback,
        on_error: ErrorCallback,
    ) -> None:
        """Route one stream line to the matching callback."""
        try:
            event = json.loads(line)
        except json.JSONDecodeError:
            logger.warning("Skipping malformed execution event", line=line[:200])
            return
        if not isinstance(event, dict):
            logger.warning("Skipping non-object execution event", line=line[:200])
            return

        if "steps" in event:
            raw_steps = event["steps"] or []
            if not isinstance(raw_steps, list):
                logger.warning("Skipping step list that is not a list", steps=str(raw_steps)[:200])
                return
            try:
                steps = [ExecutionStep.model_validate(step) for step in raw_steps]
            except ValidationError as e:
                logger.warning("Skipping invalid step list", error=str(e))
                return
            on_steps(steps)
        elif event.get("status") == "success":
            on_success()
        elif "error" in event:
            on_error(ExecutionFailedError(str(event["error"])))
        else:
            logger.debug("Ignoring unknown execution event", event=event)

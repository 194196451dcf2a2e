"""Pytest configuration and shared fixtures."""

import pytest

from sweepbuy.purchase.controller import PurchaseController
from sweepbuy.purchase.executor import PurchaseExecutor
from sweepbuy.purchase.preconditions import PreconditionValidator
from sweepbuy.state.models import Item, Signer, WalletState
from tests.fakes import (
    API_BASE,
    BUYER,
    CONTRACT,
    FakeCatalogSource,
    FakeConnector,
    ScriptedExecutionProcess,
)


@pytest.fixture
def items() -> list[Item]:
    """Three listed tokens, one without a price."""
    return [
        Item(collection_id=CONTRACT, item_id="1", floor_price=0.05),
        Item(collection_id=CONTRACT, item_id="2", floor_price=None),
        Item(collection_id=CONTRACT, item_id="3", floor_price=0.12),
    ]


@pytest.fixture
def catalog(items) -> FakeCatalogSource:
    return FakeCatalogSource(items=items)


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def process() -> ScriptedExecutionProcess:
    return ScriptedExecutionProcess()


@pytest.fixture
def validator(connector) -> PreconditionValidator:
    return PreconditionValidator(required_network_id=4, connector=connector)


@pytest.fixture
def executor(process) -> PurchaseExecutor:
    return PurchaseExecutor(process=process, api_base=API_BASE)


@pytest.fixture
def controller(catalog, validator, executor) -> PurchaseController:
    return PurchaseController(
        catalog=catalog,
        validator=validator,
        executor=executor,
        collection_contract=CONTRACT,
    )


@pytest.fixture
def wallet() -> WalletState:
    """A connected wallet on the right network with a signer."""
    return WalletState(
        signer=Signer(address=BUYER),
        connected=True,
        active_network_id=4,
        account_address=BUYER,
    )

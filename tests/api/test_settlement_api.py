from datetime import datetime

import pytest

fastapi = pytest.importorskip("fastapi")
from fastapi.testclient import TestClient

from settlement_engine.main import app
from settlement_engine.runtime import get_settlement_service
from settlement_engine.services.settlement_service import SettlementService

NEXT_DAY = datetime(2024, 5, 2, 9, 0)


@pytest.fixture
def client(repo, ledger):
    ledger.reseller("pos-a", "point_of_sale", share_on_sales="10")
    ledger.lottery("lot-1", "classic", prizes={"07": ("Delfin", "40")})
    app.dependency_overrides[get_settlement_service] = lambda: SettlementService(repo)
    yield TestClient(app)
    app.dependency_overrides.clear()


def _settle(client, winning_number="07", family="classic"):
    return client.post(
        "/settlements",
        json={"lottery_id": "lot-1", "family": family, "winning_number": winning_number, "draw_date": "2024-05-01"},
    )


def test_settle_draw_contract(client, ledger):
    winner = ledger.item(reseller_id="pos-a", lottery_id="lot-1", family="classic", amount="10", selection="07")
    ledger.item(reseller_id="pos-a", lottery_id="lot-1", family="classic", amount="5", selection="09")

    response = _settle(client)

    assert response.status_code == 200
    body = response.json()
    assert body["winners_marked"] == 1
    assert body["losers_marked"] == 1
    assert body["already_settled"] == 0
    assert body["total_paid"] == "400.00"
    assert body["total_raised"] == "15.00"
    assert body["draw_id"]
    assert ledger.item_row(winner).status == "winner"


def test_settle_draw_twice_is_a_noop(client, ledger):
    ledger.item(reseller_id="pos-a", lottery_id="lot-1", family="classic", amount="10", selection="07")

    _settle(client)
    second = _settle(client)

    assert second.status_code == 200
    assert second.json()["winners_marked"] == 0
    assert second.json()["total_paid"] == "400.00"


def test_settle_draw_with_unknown_family_is_rejected(client):
    response = _settle(client, family="keno")

    assert response.status_code == 422


def test_mark_paid_and_cancel(client, ledger):
    winner = ledger.item(reseller_id="pos-a", lottery_id="lot-1", family="classic", amount="10", selection="07")
    open_item = ledger.item(
        reseller_id="pos-a", lottery_id="lot-1", family="classic", amount="10", selection="07", created_at=NEXT_DAY
    )
    _settle(client)

    paid = client.post("/bet-items/paid", json={"ids": [winner]})
    cancelled = client.post(f"/bets/{ledger.item_row(open_item).bet_id}/cancel")

    assert paid.json() == {"count": 1}
    assert cancelled.json() == {"count": 1}
    assert ledger.item_row(winner).status == "paid"
    assert ledger.item_row(open_item).status == "cancelled"


def test_cancel_unknown_bet_error_shape(client):
    response = client.post("/bets/missing/cancel")

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert set(detail.keys()) == {"code", "message", "details"}
    assert detail["code"] == "validation_error"


def test_resettling_with_another_winning_number_is_rejected(client, ledger):
    ledger.item(reseller_id="pos-a", lottery_id="lot-1", family="classic", amount="10", selection="07")
    _settle(client, "07")

    response = _settle(client, "08")

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "validation_error"

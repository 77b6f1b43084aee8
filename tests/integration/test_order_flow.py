# tests/integration/test_order_flow.py
"""HTTP flow: place → price updates → partial and full fill → decrypt → cancel.

Runs the whole FastAPI app in-process against a fresh engine per test.
"""
from collections.abc import Callable
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio

POOL = "ETH-USDC"
Headers = Callable[[str], dict[str, str]]


async def _place(client: AsyncClient, headers: dict[str, str], body: dict[str, object]) -> dict[str, object]:
    resp = await client.post("/api/v1/orders", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _price(
    client: AsyncClient, hook_headers: dict[str, str], step: int, price: int, sell: int = 0, buy: int = 0
) -> dict[str, object]:
    resp = await client.post(
        f"/api/v1/pools/{POOL}/price-updates",
        json={"step": step, "price": price, "sell_liquidity": sell, "buy_liquidity": buy},
        headers=hook_headers,
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


class TestHealth:
    async def test_health(self, client: AsyncClient) -> None:
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"
        assert resp.json()["paused"] is False
        assert resp.headers["X-Request-ID"].startswith("req_")


class TestAuth:
    async def test_missing_token(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/orders")
        assert resp.status_code == 401

    async def test_bad_token(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/orders", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401

    async def test_trader_cannot_push_prices(self, client: AsyncClient, auth: Headers) -> None:
        resp = await client.post(
            f"/api/v1/pools/{POOL}/price-updates",
            json={"step": 1, "price": 2100},
            headers=auth("alice"),
        )
        assert resp.status_code == 403
        assert resp.json()["code"] == 4003


class TestPartialFillFlow:
    async def test_place_fill_decrypt(
        self,
        client: AsyncClient,
        db: AsyncMock,
        auth: Headers,
        hook_headers: dict[str, str],
        encrypted_order: Callable[..., dict[str, object]],
    ) -> None:
        alice = auth("alice")
        order = await _place(
            client, alice, encrypted_order(trigger=2000, size=100, min_fill=20)
        )
        order_id = order["id"]
        assert order["status"] == "PENDING"
        assert order["ciphertexts"]["order_size"].startswith("EUINT128:0x")

        first = await _price(client, hook_headers, step=1, price=2100, sell=40)
        assert first["fills"] == [
            {"order_id": order_id, "sequence": 1, "status": "PARTIALLY_FILLED", "amount": None}
        ]
        assert [e["event_type"] for e in first["events"]] == ["ORDER_FILLED"]

        replay = await _price(client, hook_headers, step=1, price=2100, sell=40)
        assert replay["duplicate"] is True

        ticket = (
            await client.post(
                f"/api/v1/orders/{order_id}/decryptions",
                json={"field": "remaining_size"},
                headers=alice,
            )
        ).json()
        assert ticket["status"] == "FULFILLED"

        view = await client.get(f"/api/v1/decryptions/{ticket['id']}", headers=alice)
        assert view.json()["plaintext"] == "60"

        done = await client.post(
            f"/api/v1/decryptions/{ticket['id']}/complete", json={"plaintext": 60}, headers=alice
        )
        assert done.json()["status"] == "CONSUMED"
        again = await client.post(
            f"/api/v1/decryptions/{ticket['id']}/complete", json={"plaintext": 60}, headers=alice
        )
        assert again.status_code == 409

        second = await _price(client, hook_headers, step=2, price=2100, sell=60)
        assert second["fills"][0]["status"] == "FILLED"

        fills = (await client.get(f"/api/v1/orders/{order_id}/fills", headers=alice)).json()
        assert fills["fill_count"] == 2
        assert [f["sequence"] for f in fills["fills"]] == [1, 2]
        assert db.commit.await_count >= 5

    async def test_all_or_nothing_waits(
        self,
        client: AsyncClient,
        auth: Headers,
        hook_headers: dict[str, str],
        encrypted_order: Callable[..., dict[str, object]],
    ) -> None:
        order = await _place(client, auth("alice"), encrypted_order(size=50, partial=False))
        result = await _price(client, hook_headers, step=1, price=2100, sell=30)
        assert result["evaluated"] == [order["id"]]
        assert result["fills"] == []


class TestAccessRules:
    async def test_other_principal_cannot_view_or_cancel(
        self, client: AsyncClient, auth: Headers, encrypted_order: Callable[..., dict[str, object]]
    ) -> None:
        order = await _place(client, auth("alice"), encrypted_order())
        bob = auth("bob")
        assert (await client.get(f"/api/v1/orders/{order['id']}", headers=bob)).status_code == 403
        assert (await client.post(f"/api/v1/orders/{order['id']}/cancel", headers=bob)).status_code == 403
        resp = await client.post(
            f"/api/v1/orders/{order['id']}/decryptions", json={"field": "trigger_price"}, headers=bob
        )
        assert resp.status_code == 403
        assert resp.json()["code"] == 6001

    async def test_owner_cancel_then_cancel_again(
        self, client: AsyncClient, auth: Headers, encrypted_order: Callable[..., dict[str, object]]
    ) -> None:
        alice = auth("alice")
        order = await _place(client, alice, encrypted_order())
        resp = await client.post(f"/api/v1/orders/{order['id']}/cancel", headers=alice)
        assert resp.json() == {"order_id": order["id"], "status": "CANCELLED"}
        again = await client.post(f"/api/v1/orders/{order['id']}/cancel", headers=alice)
        assert again.status_code == 422
        assert again.json()["code"] == 4006

    async def test_malformed_order(
        self, client: AsyncClient, auth: Headers, encrypted_order: Callable[..., dict[str, object]]
    ) -> None:
        body = encrypted_order()
        del body["expiration_time"]
        resp = await client.post("/api/v1/orders", json=body, headers=auth("alice"))
        assert resp.status_code == 422
        assert resp.json()["code"] == 4001

    async def test_unknown_order(self, client: AsyncClient, auth: Headers) -> None:
        resp = await client.get("/api/v1/orders/999", headers=auth("alice"))
        assert resp.status_code == 404


class TestHookAndAdmin:
    async def test_sweep_and_candidates(
        self,
        client: AsyncClient,
        auth: Headers,
        hook_headers: dict[str, str],
        encrypted_order: Callable[..., dict[str, object]],
    ) -> None:
        alice = auth("alice")
        expired = await _place(client, alice, encrypted_order(expires_at=1))
        live = await _place(client, alice, encrypted_order())
        resp = await client.post(f"/api/v1/pools/{POOL}/sweep", json={}, headers=hook_headers)
        assert resp.json() == {"pool": POOL, "expired": [expired["id"]]}
        candidates = await client.get(f"/api/v1/pools/{POOL}/candidates", headers=hook_headers)
        assert candidates.json()["order_ids"] == [live["id"]]

    async def test_latest_price(self, client: AsyncClient, hook_headers: dict[str, str]) -> None:
        await _price(client, hook_headers, step=3, price=2050, sell=5)
        resp = await client.get(f"/api/v1/pools/{POOL}/price", headers=hook_headers)
        assert resp.json()["price"] == 2050

    async def test_emergency_cancel(
        self,
        client: AsyncClient,
        auth: Headers,
        admin_headers: dict[str, str],
        encrypted_order: Callable[..., dict[str, object]],
    ) -> None:
        order = await _place(client, auth("alice"), encrypted_order())
        resp = await client.post(
            f"/api/v1/admin/orders/{order['id']}/cancel", json={"reason": "incident"}, headers=admin_headers
        )
        body = resp.json()
        assert body["code"] == 0
        assert body["data"]["status"] == "CANCELLED"

    async def test_admin_endpoints_reject_traders(self, client: AsyncClient, auth: Headers) -> None:
        resp = await client.post(
            "/api/v1/admin/grants/revoke", json={"handle": "0x1000", "principal": "alice"},
            headers=auth("alice"),
        )
        assert resp.status_code == 403

    async def test_revoke_grant(
        self,
        client: AsyncClient,
        auth: Headers,
        admin_headers: dict[str, str],
        encrypted_order: Callable[..., dict[str, object]],
    ) -> None:
        alice = auth("alice")
        order = await _place(client, alice, encrypted_order())
        handle = order["ciphertexts"]["trigger_price"].split(":")[1]
        resp = await client.post(
            "/api/v1/admin/grants/revoke", json={"handle": handle, "principal": "alice"},
            headers=admin_headers,
        )
        assert resp.json()["data"]["revoked"] is True
        denied = await client.post(
            f"/api/v1/orders/{order['id']}/decryptions", json={"field": "trigger_price"}, headers=alice
        )
        assert denied.status_code == 403

"""HTTP tests for premium endpoints."""


class TestPremiumEndpoints:
    async def test_activate_then_status(self, client, register):
        await register("dev-1")

        activated = await client.post("/api/admin/activate-premium", json={"device_id": "dev-1"})
        status = await client.get("/api/premium/status/dev-1")

        assert activated.status_code == 200
        assert activated.json()["is_premium"] is True
        body = status.json()
        assert body["premium_active"] is True
        assert body["days_remaining"] == 30
        assert body["device_id"] == "dev-1"

    async def test_status_for_unknown_device_is_404(self, client):
        resp = await client.get("/api/premium/status/missing")

        assert resp.status_code == 404

    async def test_default_pricing(self, client):
        resp = await client.get("/api/pricing")

        assert resp.status_code == 200
        assert resp.json() == {"price": 49.0, "duration_days": 30, "plan_name": "Premium"}

    async def test_update_pricing(self, client):
        resp = await client.post(
            "/api/admin/update-price",
            json={"price": 99, "duration_days": 90, "plan_name": "Quarterly"},
        )

        assert resp.status_code == 200
        pricing = await client.get("/api/pricing")
        assert pricing.json() == {"price": 99.0, "duration_days": 90, "plan_name": "Quarterly"}

    async def test_non_positive_price_is_400(self, client):
        resp = await client.post("/api/admin/update-price", json={"price": 0, "duration_days": 30})

        assert resp.status_code == 400

"""HTTP tests for account endpoints."""


class TestRegisterDeviceEndpoint:
    async def test_first_registration_returns_201(self, client):
        resp = await client.post("/api/register-device", json={"device_id": "dev-1"})

        assert resp.status_code == 201
        data = resp.json()
        assert data["coins"] == 0
        assert data["referral_code"].startswith("BGSHWR")
        assert data["referral_url"].endswith(data["referral_code"])

    async def test_repeat_registration_returns_200(self, client, register):
        first = await register("dev-1")

        resp = await client.post("/api/register-device", json={"device_id": "dev-1"})

        assert resp.status_code == 200
        assert resp.json()["id"] == first["id"]

    async def test_blank_referral_code_is_treated_as_absent(self, client):
        resp = await client.post("/api/register-device", json={"device_id": "dev-1", "referral_code": "  "})

        assert resp.status_code == 201
        assert resp.json()["referred_by"] is None

    async def test_referral_flow(self, client, register):
        referrer = await register("dev-a")

        referee = await register("dev-b", referrer["referral_code"])

        assert referee["referred_by"] == referrer["referral_code"]
        resp = await client.get("/api/user/device/dev-a")
        assert resp.json()["coins"] == 10

    async def test_overlong_referral_code_still_registers(self, client):
        resp = await client.post("/api/register-device", json={"device_id": "dev-x", "referral_code": "X" * 40})

        assert resp.status_code == 201
        assert resp.json()["referred_by"] is None

    async def test_missing_device_id_is_400(self, client):
        resp = await client.post("/api/register-device", json={})

        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid request"


class TestProfileEndpoint:
    async def test_create_then_update(self, client):
        payload = {"device_id": "dev-p", "name": "Asha", "phone": "9876543210"}

        created = await client.post("/api/profile", json=payload)
        updated = await client.post("/api/profile", json={**payload, "name": "Asha Devi"})

        assert created.status_code == 201
        assert created.json()["coins"] == 5
        assert updated.status_code == 200
        assert updated.json()["name"] == "Asha Devi"
        assert updated.json()["coins"] == 5

    async def test_bad_phone_is_400(self, client):
        resp = await client.post("/api/profile", json={"device_id": "dev-p", "name": "Asha", "phone": "98765"})

        assert resp.status_code == 400
        body = resp.json()
        assert body["code"] == "validation_error"
        assert body["details"] == {"field": "phone"}

    async def test_blank_name_is_400(self, client):
        resp = await client.post("/api/profile", json={"device_id": "dev-p", "name": " ", "phone": "9876543210"})

        assert resp.status_code == 400


class TestAccountLookup:
    async def test_lookup_by_device_and_id(self, client, register):
        account = await register("dev-1")

        by_device = await client.get("/api/user/device/dev-1")
        by_id = await client.get(f"/api/user/{account['id']}")

        assert by_device.status_code == 200
        assert by_id.status_code == 200
        assert by_device.json() == by_id.json()

    async def test_unknown_device_is_404(self, client):
        resp = await client.get("/api/user/device/missing")

        assert resp.status_code == 404
        assert resp.json()["error"] == "User not found"

    async def test_unknown_id_is_404(self, client):
        resp = await client.get("/api/user/999999")

        assert resp.status_code == 404

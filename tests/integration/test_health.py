import pytest
from httpx import AsyncClient
from fastapi import status

@pytest.mark.asyncio
class TestHealth:

    async def test_health_check(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == status.HTTP_200_OK

        body = response.json()
        assert body["success"] is True
        assert body["data"]["status"] == "healthy"
        assert body["data"]["database"] == "connected"
        assert body["data"]["environment"] == "testing"
        assert body["data"]["timestamp"].endswith("Z")

    async def test_root(self, client: AsyncClient):
        response = await client.get("/")
        assert response.status_code == status.HTTP_200_OK

        body = response.json()
        assert body["success"] is True
        assert body["data"]["docs"] == "/docs"

    async def test_unknown_route_uses_envelope(self, client: AsyncClient):
        response = await client.get("/api/v1/unknown")
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["success"] is False

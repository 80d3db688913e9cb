import pytest
from httpx import AsyncClient
from fastapi import status

@pytest.mark.asyncio
class TestAuth:
    """Test authentication endpoints"""

    async def test_login_success(self, client: AsyncClient):
        """Test successful login"""
        login_data = {
            "email": "admin@rentauto.cl",
            "password": "admin123"
        }

        response = await client.post("/api/v1/auth/login", json=login_data)
        assert response.status_code == status.HTTP_200_OK

        body = response.json()
        assert body["success"] is True
        assert body["data"]["access_token"]
        assert body["data"]["token_type"] == "bearer"
        assert body["data"]["expires_in"] == 1440 * 60
        assert body["data"]["user"]["email"] == "admin@rentauto.cl"
        assert body["data"]["user"]["role"] == "admin"
        assert "hashed_password" not in body["data"]["user"]

    async def test_login_is_case_insensitive_on_email(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "Flota@RentAuto.cl", "password": "flota123"}
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["user"]["role"] == "fleet_manager"

    async def test_login_invalid_credentials(self, client: AsyncClient):
        """Test login with invalid credentials"""
        login_data = {
            "email": "nonexistent@rentauto.cl",
            "password": "wrongpassword"
        }

        response = await client.post("/api/v1/auth/login", json=login_data)
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Invalid credentials"

    async def test_login_wrong_password(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "admin@rentauto.cl", "password": "not-the-password"}
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    async def test_login_validation_error(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/login", json={"email": "not-an-email"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Validation errors"
        fields = {error["field"] for error in body["errors"]}
        assert {"email", "password"} <= fields

    async def test_get_profile(self, client: AsyncClient, admin_headers: dict):
        """Test getting current user info"""
        response = await client.get("/api/v1/auth/profile", headers=admin_headers)
        assert response.status_code == status.HTTP_200_OK

        data = response.json()["data"]
        assert data["email"] == "admin@rentauto.cl"
        assert data["role"] == "admin"
        assert data["last_login"] is not None

    async def test_profile_requires_token(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/profile")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["success"] is False

    async def test_profile_rejects_invalid_token(self, client: AsyncClient):
        response = await client.get(
            "/api/v1/auth/profile",
            headers={"Authorization": "Bearer not-a-real-token"}
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    async def test_update_profile(self, client: AsyncClient, customer_headers: dict):
        response = await client.put(
            "/api/v1/auth/profile",
            json={"first_name": "Carla", "phone": "+56900000000"},
            headers=customer_headers
        )
        assert response.status_code == status.HTTP_200_OK

        data = response.json()["data"]
        assert data["first_name"] == "Carla"
        assert data["phone"] == "+56900000000"
        assert data["role"] == "customer"

    async def test_update_profile_cannot_change_role(self, client: AsyncClient, customer_headers: dict):
        response = await client.put(
            "/api/v1/auth/profile",
            json={"role": "admin"},
            headers=customer_headers
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    async def test_change_password(self, client: AsyncClient, fleet_headers: dict):
        """Test password change"""
        change_data = {
            "current_password": "flota123",
            "new_password": "NewStrongPass123!"
        }

        response = await client.put("/api/v1/auth/change-password", json=change_data, headers=fleet_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["message"] == "Password changed successfully"

        old_login = await client.post(
            "/api/v1/auth/login", json={"email": "flota@rentauto.cl", "password": "flota123"}
        )
        assert old_login.status_code == status.HTTP_401_UNAUTHORIZED

        new_login = await client.post(
            "/api/v1/auth/login", json={"email": "flota@rentauto.cl", "password": "NewStrongPass123!"}
        )
        assert new_login.status_code == status.HTTP_200_OK

    async def test_change_password_wrong_current(self, client: AsyncClient, fleet_headers: dict):
        response = await client.put(
            "/api/v1/auth/change-password",
            json={"current_password": "wrong", "new_password": "whatever123"},
            headers=fleet_headers
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["message"] == "Current password is incorrect"


@pytest.mark.asyncio
class TestUserAdministration:
    """Admin-only account management"""

    async def test_register_user(self, client: AsyncClient, admin_headers: dict):
        """Test user registration"""
        user_data = {
            "email": "Nuevo.Gestor@rentauto.cl",
            "password": "StrongPass123!",
            "first_name": "Nuevo",
            "last_name": "Gestor",
            "role": "fleet_manager"
        }

        response = await client.post("/api/v1/auth/register", json=user_data, headers=admin_headers)
        assert response.status_code == status.HTTP_201_CREATED

        data = response.json()["data"]
        assert data["email"] == "nuevo.gestor@rentauto.cl"
        assert data["role"] == "fleet_manager"
        assert data["is_active"] is True
        assert "hashed_password" not in data

        login = await client.post(
            "/api/v1/auth/login",
            json={"email": "nuevo.gestor@rentauto.cl", "password": "StrongPass123!"}
        )
        assert login.status_code == status.HTTP_200_OK

    async def test_register_defaults_to_customer_role(self, client: AsyncClient, admin_headers: dict):
        response = await client.post(
            "/api/v1/auth/register",
            json={
                "email": "sin.rol@rentauto.cl",
                "password": "StrongPass123!",
                "first_name": "Sin",
                "last_name": "Rol"
            },
            headers=admin_headers
        )
        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["data"]["role"] == "customer"

    async def test_register_duplicate_email(self, client: AsyncClient, admin_headers: dict):
        response = await client.post(
            "/api/v1/auth/register",
            json={
                "email": "flota@rentauto.cl",
                "password": "StrongPass123!",
                "first_name": "Otra",
                "last_name": "Persona"
            },
            headers=admin_headers
        )
        assert response.status_code == status.HTTP_409_CONFLICT

    async def test_register_requires_admin(self, client: AsyncClient, fleet_headers: dict):
        response = await client.post(
            "/api/v1/auth/register",
            json={
                "email": "intruso@rentauto.cl",
                "password": "StrongPass123!",
                "first_name": "Intruso",
                "last_name": "Flota"
            },
            headers=fleet_headers
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    async def test_list_users(self, client: AsyncClient, admin_headers: dict):
        response = await client.get("/api/v1/auth/users?page=1&limit=2", headers=admin_headers)
        assert response.status_code == status.HTTP_200_OK

        data = response.json()["data"]
        assert len(data["items"]) == 2
        assert data["pagination"] == {"total": 3, "page": 1, "limit": 2, "totalPages": 2}

    async def test_list_users_filtered_by_role(self, client: AsyncClient, admin_headers: dict):
        response = await client.get("/api/v1/auth/users?role=customer", headers=admin_headers)
        assert response.status_code == status.HTTP_200_OK

        items = response.json()["data"]["items"]
        assert [user["email"] for user in items] == ["cliente@rentauto.cl"]

    async def test_deactivated_user_loses_access(
        self, client: AsyncClient, admin_headers: dict, customer_headers: dict
    ):
        users = await client.get("/api/v1/auth/users?role=customer", headers=admin_headers)
        customer_id = users.json()["data"]["items"][0]["id"]

        response = await client.put(
            f"/api/v1/auth/users/{customer_id}", json={"is_active": False}, headers=admin_headers
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["is_active"] is False

        profile = await client.get("/api/v1/auth/profile", headers=customer_headers)
        assert profile.status_code == status.HTTP_401_UNAUTHORIZED

    async def test_admin_cannot_deactivate_self(self, client: AsyncClient, admin_headers: dict):
        profile = await client.get("/api/v1/auth/profile", headers=admin_headers)
        admin_id = profile.json()["data"]["id"]

        response = await client.put(
            f"/api/v1/auth/users/{admin_id}", json={"is_active": False}, headers=admin_headers
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    async def test_update_unknown_user(self, client: AsyncClient, admin_headers: dict):
        response = await client.put(
            "/api/v1/auth/users/9999", json={"first_name": "Nadie"}, headers=admin_headers
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND

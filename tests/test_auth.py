"""
Tests for authentication endpoints.
"""
import pytest
from contenthq.auth import create_access_token
from contenthq.models import Member


class TestAuthEndpoints:
    """Test auth endpoints."""

    def test_register_creates_organization_owner(self, client):
        """Test registration creates an organization with the caller as owner."""
        response = client.post(
            "/api/auth/register",
            json={
                "email": "newuser@example.com",
                "password": "securepassword123",
                "display_name": "New User",
                "organization_name": "Studio Norte",
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["email"] == "newuser@example.com"
        assert data["display_name"] == "New User"
        assert data["role"] == "owner"
        assert "org_id" in data

    def test_register_duplicate_email(self, client, manager):
        """Test registration with existing email fails."""
        response = client.post(
            "/api/auth/register",
            json={
                "email": "manager@example.com",
                "password": "anotherpassword",
                "organization_name": "Another Agency",
            },
        )
        assert response.status_code == 400
        assert "already registered" in response.json()["error"]

    def test_login_success(self, client, manager):
        """Test successful login."""
        response = client.post(
            "/api/auth/login/json",
            json={
                "email": "manager@example.com",
                "password": "testpassword123",
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert "access_token" in data
        assert "refresh_token" in data
        assert data["token_type"] == "bearer"

    def test_login_wrong_password(self, client, manager):
        """Test login with wrong password fails."""
        response = client.post(
            "/api/auth/login/json",
            json={
                "email": "manager@example.com",
                "password": "wrongpassword",
            },
        )
        assert response.status_code == 401

    def test_login_nonexistent_member(self, client):
        """Test login with non-existent member fails."""
        response = client.post(
            "/api/auth/login/json",
            json={
                "email": "nobody@example.com",
                "password": "anypassword",
            },
        )
        assert response.status_code == 401

    def test_login_inactive_member(self, client, manager, db):
        manager.is_active = False
        db.commit()

        response = client.post(
            "/api/auth/login/json",
            json={"email": "manager@example.com", "password": "testpassword123"},
        )
        assert response.status_code == 401

    def test_get_current_member(self, client, manager):
        """Test getting current member info."""
        login_response = client.post(
            "/api/auth/login/json",
            json={"email": "manager@example.com", "password": "testpassword123"},
        )
        token = login_response.json()["access_token"]

        response = client.get(
            "/api/auth/me",
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["email"] == manager.email
        assert data["id"] == manager.id
        assert data["org_id"] == manager.org_id

    def test_get_current_member_unauthenticated(self, client):
        """Test getting current member without auth fails."""
        response = client.get("/api/auth/me")
        assert response.status_code == 401

    def test_refresh_token_cannot_be_used_as_access_token(self, client, manager):
        login_response = client.post(
            "/api/auth/login/json",
            json={"email": "manager@example.com", "password": "testpassword123"},
        )
        refresh_token = login_response.json()["refresh_token"]

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {refresh_token}"})
        assert response.status_code == 401

    def test_refresh_token(self, client, manager):
        """Test token refresh."""
        login_response = client.post(
            "/api/auth/login/json",
            json={
                "email": "manager@example.com",
                "password": "testpassword123",
            },
        )
        refresh_token = login_response.json()["refresh_token"]

        response = client.post(
            "/api/auth/refresh",
            json={"refresh_token": refresh_token},
        )
        assert response.status_code == 200
        data = response.json()
        assert "access_token" in data
        assert "refresh_token" in data


class TestMembers:
    """Test adding teammates to an organization."""

    @pytest.fixture
    def owner_headers(self, db, manager):
        manager.role = "owner"
        db.commit()
        return {"Authorization": f"Bearer {create_access_token({'sub': str(manager.id)})}"}

    def test_owner_adds_designer(self, client, owner_headers, organization, db):
        response = client.post(
            "/api/auth/members",
            headers=owner_headers,
            json={"email": "new.designer@example.com", "password": "secret123", "role": "designer"},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["role"] == "designer"
        assert data["org_id"] == organization.id
        assert db.query(Member).filter(Member.email == "new.designer@example.com").count() == 1

    def test_invalid_role_rejected(self, client, owner_headers):
        response = client.post(
            "/api/auth/members",
            headers=owner_headers,
            json={"email": "x@example.com", "password": "secret123", "role": "client"},
        )
        assert response.status_code == 400

    def test_non_owner_cannot_add_members(self, client, designer_headers):
        response = client.post(
            "/api/auth/members",
            headers=designer_headers,
            json={"email": "y@example.com", "password": "secret123"},
        )
        assert response.status_code == 403

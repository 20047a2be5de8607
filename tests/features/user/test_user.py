"""Tests for the user feature.
Covers: UserService, initial admin seeding, admin user management endpoints, role checks, User model methods.
"""

from contextlib import asynccontextmanager

import pytest
from fastapi import status
from sqlalchemy import func, select

from src.config.settings import settings
from src.database import client as db_client
from src.features.auth.models import RefreshToken
from src.features.auth.refresh_tokens import RefreshTokenService
from src.features.user.exceptions import EmailAlreadyExists, EmailChangeNotAllowed, EmptyUpdate, UserNotFound
from src.features.user.models import User, UserRole
from src.features.user.schemas import UserCreateRequest, UserUpdateRequest
from src.features.user.service import UserService
from src.main import seed_initial_admin
from src.shared.pagination.pagination import PaginationParams

USERS_URL = f"{settings.api_prefix}/users"

# UserService Unit Tests


class TestUserServiceCreate:
    """Tests for UserService.create_user()"""

    async def test_create_user_success(self, session):
        data = UserCreateRequest(name="New User", email="NewUser@Example.com", password="SecurePass123")
        user = await UserService.create_user(session, data)

        assert user.id is not None
        assert user.email == "newuser@example.com"
        assert user.role == UserRole.USER
        assert user.is_active is True
        assert user.hashed_password != "SecurePass123"

    async def test_create_admin(self, session):
        data = UserCreateRequest(name="Boss", email="boss@example.com", password="SecurePass123", role=UserRole.ADMIN)
        user = await UserService.create_user(session, data)
        assert user.role == UserRole.ADMIN

    async def test_create_user_duplicate_email(self, session, make_user):
        await make_user(email="dup@example.com")
        data = UserCreateRequest(name="Dup", email="DUP@example.com", password="SecurePass123")

        with pytest.raises(EmailAlreadyExists):
            await UserService.create_user(session, data)


class TestUserServiceGet:
    async def test_get_user(self, session, make_user):
        user = await make_user()
        assert (await UserService.get_user(session, user.id)).id == user.id

    async def test_get_missing_user(self, session):
        with pytest.raises(UserNotFound):
            await UserService.get_user(session, 99999)

    async def test_get_users_paginated(self, session, make_user):
        for _ in range(5):
            await make_user()

        users, total = await UserService.get_users(session, PaginationParams(page=2, page_size=2))

        assert total == 5
        assert len(users) == 2
        assert users[0].id < users[1].id

    async def test_get_users_unpaginated(self, session, make_user):
        for _ in range(3):
            await make_user()

        users, total = await UserService.get_users(session, PaginationParams(page=None, page_size=None))

        assert total == len(users) == 3


class TestUserServiceUpdate:
    async def test_update_name(self, session, make_user):
        user = await make_user(name="Old Name")
        updated = await UserService.update_user(session, user.id, UserUpdateRequest(name="New Name"))
        assert updated.name == "New Name"

    async def test_update_email_rejected(self, session, make_user):
        user = await make_user()
        with pytest.raises(EmailChangeNotAllowed):
            await UserService.update_user(session, user.id, UserUpdateRequest(email="other@example.com"))

    async def test_empty_update_rejected(self, session, make_user):
        user = await make_user()
        with pytest.raises(EmptyUpdate):
            await UserService.update_user(session, user.id, UserUpdateRequest())

    async def test_update_missing_user(self, session):
        with pytest.raises(UserNotFound):
            await UserService.update_user(session, 99999, UserUpdateRequest(name="Ghost"))


class TestUserServicePassword:
    async def test_reset_password_revokes_refresh_tokens(self, session, make_user):
        user = await make_user(password="OldPassword1")
        await RefreshTokenService.issue(session, user)
        await RefreshTokenService.issue(session, user)
        await session.commit()

        await UserService.reset_password(session, user.id, "NewPassword2")
        await session.commit()

        assert user.verify_password("NewPassword2")
        assert not user.verify_password("OldPassword1")
        result = await session.execute(
            select(RefreshToken).where(RefreshToken.user_id == user.id).execution_options(populate_existing=True)
        )
        assert all(t.revoked for t in result.scalars().all())


class TestInitialAdmin:
    """Tests for the startup admin account."""

    @staticmethod
    def _admin_data() -> UserCreateRequest:
        return UserCreateRequest(name="Admin", email="Admin@Taskflow.dev", password="AdminPass123")

    async def test_seeds_admin_into_empty_database(self, session):
        admin = await UserService.ensure_initial_admin(session, self._admin_data())

        assert admin is not None
        assert admin.email == "admin@taskflow.dev"
        assert admin.role == UserRole.ADMIN

    async def test_is_idempotent(self, session):
        await UserService.ensure_initial_admin(session, self._admin_data())
        await session.commit()

        assert await UserService.ensure_initial_admin(session, self._admin_data()) is None
        total = (await session.execute(select(func.count()).select_from(User))).scalar_one()
        assert total == 1

    async def test_skipped_when_users_exist(self, session, make_user):
        await make_user()

        assert await UserService.ensure_initial_admin(session, self._admin_data()) is None

    async def test_seeded_admin_can_manage_users(self, session, client, monkeypatch):
        @asynccontextmanager
        async def _test_session():
            yield session
            await session.commit()

        monkeypatch.setattr(db_client, "get_session", _test_session)
        monkeypatch.setattr(settings, "initial_admin_email", "admin@taskflow.dev")
        monkeypatch.setattr(settings, "initial_admin_password", "AdminPass123")

        await seed_initial_admin()

        login = await client.post(
            f"{settings.api_prefix}/auth/login", json={"email": "admin@taskflow.dev", "password": "AdminPass123"}
        )
        assert login.status_code == status.HTTP_200_OK
        assert login.json()["role"] == UserRole.ADMIN

        response = await client.get(USERS_URL, headers={"Authorization": f"Bearer {login.json()['access_token']}"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["total"] == 1


# User API Endpoint Tests (HTTP Layer)


class TestUserEndpointAccess:
    async def test_requires_authentication(self, client):
        response = await client.get(USERS_URL)
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    async def test_regular_user_forbidden(self, auth_client):
        client, _ = auth_client

        response = await client.get(USERS_URL)

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert "ADMIN" in response.json()["detail"]

    async def test_invalid_token_is_unauthenticated(self, client):
        response = await client.get(USERS_URL, headers={"Authorization": "Bearer invalid.token.here"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestUserEndpointCreate:
    async def test_create_user(self, admin_client):
        client, _ = admin_client

        response = await client.post(
            USERS_URL, json={"name": "Created", "email": "created@example.com", "password": "SecurePass123"}
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["email"] == "created@example.com"
        assert data["role"] == UserRole.USER
        assert data["is_active"] is True
        assert "hashed_password" not in data

    async def test_create_duplicate_email(self, admin_client, make_user):
        client, _ = admin_client
        await make_user(email="exists@example.com")

        response = await client.post(
            USERS_URL, json={"name": "Again", "email": "exists@example.com", "password": "SecurePass123"}
        )

        assert response.status_code == status.HTTP_409_CONFLICT

    async def test_create_weak_password(self, admin_client):
        client, _ = admin_client

        response = await client.post(USERS_URL, json={"name": "Weak", "email": "weak@example.com", "password": "123"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT

    async def test_regular_user_cannot_create(self, auth_client):
        client, _ = auth_client

        response = await client.post(
            USERS_URL, json={"name": "Nope", "email": "nope@example.com", "password": "SecurePass123"}
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestUserEndpointList:
    async def test_list_users(self, admin_client, make_user):
        client, _ = admin_client
        await make_user()
        await make_user()

        response = await client.get(USERS_URL)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["total"] == 3
        assert len(data["users"]) == 3
        assert data["page"] == 1
        assert data["page_size"] == 50

    async def test_list_users_pagination(self, admin_client, make_user):
        client, _ = admin_client
        for _ in range(4):
            await make_user()

        response = await client.get(USERS_URL, params={"page": 2, "page_size": 2})

        data = response.json()
        assert data["total"] == 5
        assert len(data["users"]) == 2
        assert data["page"] == 2

    async def test_page_size_above_max(self, admin_client):
        client, _ = admin_client
        response = await client.get(USERS_URL, params={"page_size": 5000})
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT


class TestUserEndpointGetUser:
    async def test_get_user(self, admin_client, make_user):
        client, _ = admin_client
        user = await make_user(email="target@example.com")

        response = await client.get(f"{USERS_URL}/{user.id}")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["email"] == "target@example.com"

    async def test_get_missing_user(self, admin_client):
        client, _ = admin_client
        response = await client.get(f"{USERS_URL}/99999")
        assert response.status_code == status.HTTP_404_NOT_FOUND

    async def test_get_user_non_integer_id(self, admin_client):
        client, _ = admin_client
        response = await client.get(f"{USERS_URL}/not-a-number")
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT


class TestUserEndpointUpdateUser:
    async def test_update_name(self, admin_client, make_user):
        client, _ = admin_client
        user = await make_user(name="Before")

        response = await client.put(f"{USERS_URL}/{user.id}", json={"name": "After"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["name"] == "After"

    async def test_update_email_rejected(self, admin_client, make_user):
        client, _ = admin_client
        user = await make_user()

        response = await client.put(f"{USERS_URL}/{user.id}", json={"email": "changed@example.com"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == "Email cannot be changed"

    async def test_empty_update_rejected(self, admin_client, make_user):
        client, _ = admin_client
        user = await make_user()

        response = await client.put(f"{USERS_URL}/{user.id}", json={})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    async def test_update_missing_user(self, admin_client):
        client, _ = admin_client
        response = await client.put(f"{USERS_URL}/99999", json={"name": "Ghost"})
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestUserEndpointResetPassword:
    async def test_reset_password(self, admin_client, make_user):
        client, _ = admin_client
        user = await make_user(email="reset@example.com", password="OldPassword1")
        login = await client.post(
            f"{settings.api_prefix}/auth/login", json={"email": "reset@example.com", "password": "OldPassword1"}
        )
        refresh_token = login.json()["refresh_token"]

        response = await client.put(f"{USERS_URL}/{user.id}/password", json={"new_password": "NewPassword2"})
        assert response.status_code == status.HTTP_204_NO_CONTENT

        refreshed = await client.post(f"{settings.api_prefix}/auth/refresh", json={"refresh_token": refresh_token})
        assert refreshed.status_code == status.HTTP_400_BAD_REQUEST

        relogin = await client.post(
            f"{settings.api_prefix}/auth/login", json={"email": "reset@example.com", "password": "NewPassword2"}
        )
        assert relogin.status_code == status.HTTP_200_OK

    async def test_reset_password_missing_user(self, admin_client):
        client, _ = admin_client
        response = await client.put(f"{USERS_URL}/99999/password", json={"new_password": "NewPassword2"})
        assert response.status_code == status.HTTP_404_NOT_FOUND


# User model methods


class TestUserModelMethods:
    def test_hash_and_verify_password(self):
        hashed = User.hash_password("Password123")
        user = User(name="Model", email="model@example.com", hashed_password=hashed)

        assert hashed != "Password123"
        assert user.verify_password("Password123")
        assert not user.verify_password("Password124")

    def test_verify_against_malformed_hash(self):
        user = User(name="Broken", email="broken@example.com", hashed_password="not-a-hash")
        assert user.verify_password("anything1") is False

"""
Tests for Users API Endpoints

Covers profiles, account administration and the self-protection rules
(admins cannot change their own role or delete their own account).
"""

from fastapi import status

from bookreviews.models import User
from bookreviews.services.security import verify_password
from tests.utils import add_review, get_auth_header


class TestProfile:
    """Tests for /api/v1/users/profile."""

    def test_get_profile(self, client, sample_user, sample_review):
        response = client.get("/api/v1/users/profile", headers=get_auth_header(sample_user))

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["user"]["username"] == "reader"
        assert "hashed_password" not in data["user"]
        assert data["stats"]["total_reviews"] == 1
        assert data["stats"]["average_rating"] == "4.00"
        assert data["favorite_genres"] == [
            {"genre": "Science Fiction", "review_count": 1, "average_rating": "4.00"}
        ]

    def test_get_profile_without_reviews(self, client, sample_user):
        data = client.get("/api/v1/users/profile", headers=get_auth_header(sample_user)).json()

        assert data["stats"]["total_reviews"] == 0
        assert data["stats"]["first_review_at"] is None
        assert data["favorite_genres"] == []

    def test_update_profile(self, client, sample_user):
        response = client.put(
            "/api/v1/users/profile",
            json={"username": "bookworm", "email": "bookworm@example.com"},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["message"] == "Profile updated successfully"
        assert data["user"]["username"] == "bookworm"

    def test_update_profile_taken_username(self, client, sample_user, second_user):
        response = client.put(
            "/api/v1/users/profile",
            json={"username": "Critic", "email": "reader@example.com"},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json() == {
            "error": "An account with this username already exists",
            "field": "username",
        }

    def test_update_profile_taken_email(self, client, sample_user, second_user):
        response = client.put(
            "/api/v1/users/profile",
            json={"username": "reader", "email": "critic@example.com"},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_update_profile_padded_short_username(self, client, db_session, sample_user):
        response = client.put(
            "/api/v1/users/profile",
            json={"username": " b ", "email": "reader@example.com"},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        db_session.refresh(sample_user)
        assert sample_user.username == "reader"

    def test_profile_requires_auth(self, client):
        assert client.get("/api/v1/users/profile").status_code == status.HTTP_401_UNAUTHORIZED


class TestGetUser:
    def test_get_user_detail(self, client, sample_user, second_user, sample_review):
        response = client.get(
            f"/api/v1/users/{sample_user.id}",
            headers=get_auth_header(second_user),
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["user"]["id"] == sample_user.id
        assert data["stats"]["total_reviews"] == 1
        assert data["recent_reviews"][0]["book_title"] == "Dune"

    def test_get_user_not_found(self, client, sample_user):
        response = client.get("/api/v1/users/99999", headers=get_auth_header(sample_user))

        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestUpdateUser:
    """Tests for PUT /api/v1/users/{id}."""

    def test_admin_updates_other_user(self, client, admin_user, sample_user):
        response = client.put(
            f"/api/v1/users/{sample_user.id}",
            json={"username": "renamed", "email": "renamed@example.com"},
            headers=get_auth_header(admin_user),
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["user"]["email"] == "renamed@example.com"

    def test_user_cannot_update_other_user(self, client, sample_user, second_user):
        response = client.put(
            f"/api/v1/users/{second_user.id}",
            json={"username": "hijacked", "email": "hijacked@example.com"},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_invalid_username(self, client, sample_user):
        response = client.put(
            f"/api/v1/users/{sample_user.id}",
            json={"username": "no spaces!", "email": "reader@example.com"},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestChangePassword:
    """Tests for PUT /api/v1/users/{id}/password."""

    def test_change_password(self, client, db_session, sample_user):
        response = client.put(
            f"/api/v1/users/{sample_user.id}/password",
            json={"current_password": "ReaderPass1", "new_password": "NewPass99"},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"message": "Password changed successfully"}
        db_session.refresh(sample_user)
        assert verify_password("NewPass99", sample_user.hashed_password)

    def test_wrong_current_password(self, client, sample_user):
        response = client.put(
            f"/api/v1/users/{sample_user.id}/password",
            json={"current_password": "WrongPass1", "new_password": "NewPass99"},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "Current password is incorrect"}

    def test_weak_new_password(self, client, sample_user):
        response = client.put(
            f"/api/v1/users/{sample_user.id}/password",
            json={"current_password": "ReaderPass1", "new_password": "alllowercase"},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_admin_cannot_change_others_password(self, client, admin_user, sample_user):
        response = client.put(
            f"/api/v1/users/{sample_user.id}/password",
            json={"current_password": "ReaderPass1", "new_password": "NewPass99"},
            headers=get_auth_header(admin_user),
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestAdministration:
    """Admin-only account endpoints."""

    def test_list_users(self, client, db_session, admin_user, sample_user, sample_book):
        add_review(db_session, sample_user, sample_book, 5)

        response = client.get("/api/v1/users/", headers=get_auth_header(admin_user))

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["pagination"]["total"] == 2
        counts = {user["username"]: user["review_count"] for user in data["items"]}
        assert counts == {"admin": 0, "reader": 1}

    def test_list_users_search(self, client, admin_user, sample_user, second_user):
        data = client.get("/api/v1/users/?search=crit", headers=get_auth_header(admin_user)).json()

        assert [user["username"] for user in data["items"]] == ["critic"]

    def test_list_users_requires_admin(self, client, sample_user):
        response = client.get("/api/v1/users/", headers=get_auth_header(sample_user))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_user_stats(self, client, admin_user, rated_catalog):
        response = client.get("/api/v1/users/admin/stats", headers=get_auth_header(admin_user))

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["total_users"] == 3
        assert data["users_without_reviews"] == 1
        assert {row["role"]: row["user_count"] for row in data["role_distribution"]} == {
            "admin": 1,
            "user": 2,
        }
        assert data["most_active_users"][0]["username"] == "alice"

    def test_change_role(self, client, admin_user, sample_user):
        response = client.put(
            f"/api/v1/users/{sample_user.id}/role",
            json={"role": "admin"},
            headers=get_auth_header(admin_user),
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["user"]["role"] == "admin"

    def test_role_change_takes_effect_immediately(self, client, admin_user, sample_user):
        """The token still says "user", but the stored role wins."""
        headers = get_auth_header(sample_user)
        client.put(
            f"/api/v1/users/{sample_user.id}/role",
            json={"role": "admin"},
            headers=get_auth_header(admin_user),
        )

        assert client.get("/api/v1/users/", headers=headers).status_code == status.HTTP_200_OK

    def test_cannot_change_own_role(self, client, admin_user):
        response = client.put(
            f"/api/v1/users/{admin_user.id}/role",
            json={"role": "user"},
            headers=get_auth_header(admin_user),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "Cannot change your own role"}

    def test_invalid_role(self, client, admin_user, sample_user):
        response = client.put(
            f"/api/v1/users/{sample_user.id}/role",
            json={"role": "superuser"},
            headers=get_auth_header(admin_user),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_delete_user(self, client, db_session, admin_user, sample_user, sample_review):
        response = client.delete(f"/api/v1/users/{sample_user.id}", headers=get_auth_header(admin_user))

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {
            "message": 'User "reader" and all associated data deleted successfully'
        }
        assert db_session.get(User, sample_user.id) is None

    def test_deleted_user_token_is_rejected(self, client, admin_user, sample_user):
        headers = get_auth_header(sample_user)
        client.delete(f"/api/v1/users/{sample_user.id}", headers=get_auth_header(admin_user))

        assert client.get("/api/v1/auth/me", headers=headers).status_code == status.HTTP_401_UNAUTHORIZED

    def test_cannot_delete_self(self, client, admin_user):
        response = client.delete(f"/api/v1/users/{admin_user.id}", headers=get_auth_header(admin_user))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "Cannot delete your own account"}

    def test_delete_user_requires_admin(self, client, sample_user, second_user):
        response = client.delete(f"/api/v1/users/{second_user.id}", headers=get_auth_header(sample_user))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_change_role_requires_admin(self, client, db_session, sample_user, second_user):
        response = client.put(
            f"/api/v1/users/{second_user.id}/role",
            json={"role": "admin"},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json() == {"error": "Admin access required"}
        db_session.refresh(second_user)
        assert second_user.role == "user"

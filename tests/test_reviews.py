"""
Tests for Reviews API Endpoints

Business rules covered:
- One review per user per book (409 on the second attempt)
- Only the author can update a review
- The author or an admin can delete a review
"""

from fastapi import status

from tests.utils import add_review, get_auth_header


class TestCreateReview:
    """Tests for POST /api/v1/reviews/ endpoint."""

    def test_create_review_success(self, client, sample_user, sample_book):
        response = client.post(
            "/api/v1/reviews/",
            json={"book_id": sample_book.id, "rating": 5, "comment": "  Essential.  "},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["message"] == "Review created successfully"
        review = data["review"]
        assert review["rating"] == 5
        assert review["comment"] == "Essential."
        assert review["user_id"] == sample_user.id
        assert review["username"] == "reader"
        assert review["book_title"] == "Dune"

    def test_create_review_updates_book_aggregates(self, client, sample_user, sample_book):
        client.post(
            "/api/v1/reviews/",
            json={"book_id": sample_book.id, "rating": 3},
            headers=get_auth_header(sample_user),
        )

        book = client.get(f"/api/v1/books/{sample_book.id}").json()
        assert book["average_rating"] == 3
        assert book["review_count"] == 1

    def test_create_review_twice(self, client, sample_user, sample_book, sample_review):
        response = client.post(
            "/api/v1/reviews/",
            json={"book_id": sample_book.id, "rating": 1},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert "already reviewed" in response.json()["error"]

    def test_create_review_book_not_found(self, client, sample_user):
        response = client.post(
            "/api/v1/reviews/",
            json={"book_id": 99999, "rating": 4},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"error": "Book not found"}

    def test_create_review_book_id_out_of_range(self, client, sample_user):
        response = client.post(
            "/api/v1/reviews/",
            json={"book_id": 10**20, "rating": 4},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["details"][0]["field"] == "book_id"

    def test_create_review_rating_out_of_range(self, client, sample_user, sample_book):
        for rating in (0, 6):
            response = client.post(
                "/api/v1/reviews/",
                json={"book_id": sample_book.id, "rating": rating},
                headers=get_auth_header(sample_user),
            )
            assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_create_review_comment_too_long(self, client, sample_user, sample_book):
        response = client.post(
            "/api/v1/reviews/",
            json={"book_id": sample_book.id, "rating": 4, "comment": "x" * 1001},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_create_review_requires_auth(self, client, sample_book):
        response = client.post("/api/v1/reviews/", json={"book_id": sample_book.id, "rating": 4})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_create_review_invalid_token(self, client, sample_book):
        response = client.post(
            "/api/v1/reviews/",
            json={"book_id": sample_book.id, "rating": 4},
            headers={"Authorization": "Bearer not.a.token"},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {"error": "Could not validate credentials"}


class TestUpdateReview:
    """Tests for PUT /api/v1/reviews/{id} endpoint."""

    def test_update_own_review(self, client, sample_user, sample_review):
        response = client.put(
            f"/api/v1/reviews/{sample_review.id}",
            json={"rating": 5, "comment": "Better on a second read."},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["message"] == "Review updated successfully"
        assert data["review"]["rating"] == 5
        assert data["review"]["comment"] == "Better on a second read."

    def test_update_clears_comment(self, client, sample_user, sample_review):
        response = client.put(
            f"/api/v1/reviews/{sample_review.id}",
            json={"rating": 4},
            headers=get_auth_header(sample_user),
        )

        assert response.json()["review"]["comment"] is None

    def test_update_other_users_review(self, client, second_user, sample_review):
        response = client.put(
            f"/api/v1/reviews/{sample_review.id}",
            json={"rating": 1},
            headers=get_auth_header(second_user),
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json() == {"error": "You can only update your own reviews"}

    def test_admin_cannot_update_others_review(self, client, admin_user, sample_review):
        response = client.put(
            f"/api/v1/reviews/{sample_review.id}",
            json={"rating": 1},
            headers=get_auth_header(admin_user),
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_update_review_not_found(self, client, sample_user):
        response = client.put(
            "/api/v1/reviews/99999",
            json={"rating": 3},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"error": "Review not found"}


class TestDeleteReview:
    """Tests for DELETE /api/v1/reviews/{id} endpoint."""

    def test_delete_own_review(self, client, sample_user, sample_book, sample_review):
        response = client.delete(
            f"/api/v1/reviews/{sample_review.id}",
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"message": "Review deleted successfully"}
        assert client.get(f"/api/v1/books/{sample_book.id}").json()["review_count"] == 0

    def test_admin_deletes_any_review(self, client, admin_user, sample_review):
        response = client.delete(
            f"/api/v1/reviews/{sample_review.id}",
            headers=get_auth_header(admin_user),
        )

        assert response.status_code == status.HTTP_200_OK

    def test_delete_other_users_review(self, client, second_user, sample_review):
        response = client.delete(
            f"/api/v1/reviews/{sample_review.id}",
            headers=get_auth_header(second_user),
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_delete_review_not_found(self, client, sample_user):
        response = client.delete("/api/v1/reviews/99999", headers=get_auth_header(sample_user))

        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestListReviews:
    """Tests for the review listing endpoints."""

    def test_list_book_reviews_newest_first(self, client, db_session, sample_book, sample_user, second_user):
        first = add_review(db_session, sample_user, sample_book, 2)
        second = add_review(db_session, second_user, sample_book, 5)

        data = client.get(f"/api/v1/reviews/?book_id={sample_book.id}").json()

        assert [review["id"] for review in data["items"]] == [second.id, first.id]
        assert data["pagination"]["total"] == 2

    def test_list_reviews_unknown_book_is_empty(self, client):
        response = client.get("/api/v1/reviews/?book_id=99999")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["items"] == []

    def test_list_reviews_requires_book_id(self, client):
        response = client.get("/api/v1/reviews/")

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_list_user_reviews(self, client, sample_user, sample_review):
        response = client.get(
            f"/api/v1/reviews/user/{sample_user.id}",
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["items"][0]["book_title"] == "Dune"

    def test_list_user_reviews_unknown_user(self, client, sample_user):
        response = client.get("/api/v1/reviews/user/99999", headers=get_auth_header(sample_user))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"error": "User not found"}

    def test_recent_reviews(self, client, rated_catalog):
        data = client.get("/api/v1/reviews/recent?limit=3").json()

        assert [review["book_title"] for review in data] == ["Persuasion", "Emma", "Hyperion"]

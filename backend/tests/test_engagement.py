"""
Reviews and wishlists.
"""

import pytest

from giftbox.errors import NotFoundError, PermissionDeniedError, ValidationError
from giftbox.services import catalog_service, order_service, review_service, wishlist_service
from giftbox.services.review_service import ReviewError
from giftbox.services.wishlist_service import WishlistError

from conftest import auth_headers, order_payload


@pytest.fixture
def bought(db_session, make_user, make_store, make_product):
    """(buyer, order, product) with the order placed but not yet delivered."""
    buyer = make_user()
    product = make_product(make_store(), price="15.00")
    order = order_service.create_order(order_payload([(product, 1)]), user_id=buyer.id)
    return buyer, order, product


def _deliver(order):
    order_service.update_order_status(order.id, "dispatched")
    order_service.update_order_status(order.id, "delivered")


class TestReviews:

    def test_review_delivered_item(self, bought):
        buyer, order, product = bought
        _deliver(order)

        review = review_service.create_review(buyer.id, order.id, 5, "  Lovely  ", product_id=product.id)

        assert review.comment == "Lovely"
        summary = catalog_service.get_product(product.id)
        assert summary["review_count"] == 1
        assert summary["average_rating"] == 5.0

    def test_only_delivered_orders(self, bought):
        buyer, order, product = bought
        with pytest.raises(ValidationError):
            review_service.create_review(buyer.id, order.id, 4, product_id=product.id)

    def test_one_review_per_item(self, bought):
        buyer, order, product = bought
        _deliver(order)
        review_service.create_review(buyer.id, order.id, 4, product_id=product.id)
        with pytest.raises(ReviewError):
            review_service.create_review(buyer.id, order.id, 1, product_id=product.id)

    def test_only_the_owner(self, bought, make_user):
        _, order, product = bought
        _deliver(order)
        with pytest.raises(PermissionDeniedError):
            review_service.create_review(make_user().id, order.id, 4, product_id=product.id)

    def test_item_must_be_in_order(self, bought, make_store, make_product):
        buyer, order, _ = bought
        _deliver(order)
        stranger = make_product(make_store())
        with pytest.raises(ValidationError):
            review_service.create_review(buyer.id, order.id, 4, product_id=stranger.id)

    @pytest.mark.parametrize("rating", [0, 6, "5", 4.5, None])
    def test_rating_range(self, bought, rating):
        buyer, order, product = bought
        _deliver(order)
        with pytest.raises(ValidationError):
            review_service.create_review(buyer.id, order.id, rating, product_id=product.id)

    def test_exactly_one_reference(self, bought):
        buyer, order, product = bought
        with pytest.raises(ValidationError):
            review_service.create_review(buyer.id, order.id, 5)

    def test_routes(self, client, bought, token_for):
        buyer, order, product = bought
        _deliver(order)
        headers = auth_headers(token_for(buyer))

        resp = client.post("/api/reviews", json={"order_id": order.id, "product_id": product.id, "rating": 5}, headers=headers)
        assert resp.status_code == 201
        assert resp.get_json()["review"]["reviewer_name"] == buyer.name

        resp = client.post("/api/reviews", json={"order_id": order.id, "product_id": product.id, "rating": 3}, headers=headers)
        assert resp.status_code == 409

        existing = client.get(f"/api/reviews/existing?order_id={order.id}&product_id={product.id}", headers=headers)
        assert existing.get_json()["review"]["rating"] == 5

        public = client.get(f"/api/reviews?product_id={product.id}").get_json()["reviews"]
        assert len(public) == 1

        assert client.get("/api/reviews").status_code == 400


class TestWishlists:

    def test_create_and_add(self, db_session, make_user, make_store, make_product):
        user = make_user()
        product = make_product(make_store())
        wishlist = wishlist_service.create_wishlist(user.id, {"name": " Birthday ", "is_public": 1})

        assert wishlist.name == "Birthday"
        assert wishlist.is_public is True

        wishlist_service.add_product_to_wishlist(wishlist.id, user.id, product.id)
        with pytest.raises(WishlistError):
            wishlist_service.add_product_to_wishlist(wishlist.id, user.id, product.id)
        assert len(wishlist_service.list_wishlist_items(wishlist.id, user.id)) == 1

    def test_name_required(self, db_session, make_user):
        with pytest.raises(ValidationError):
            wishlist_service.create_wishlist(make_user().id, {"name": "  "})

    def test_private_wishlist_hidden_from_others(self, db_session, make_user):
        owner = make_user()
        wishlist = wishlist_service.create_wishlist(owner.id, {"name": "Secret"})

        with pytest.raises(NotFoundError):
            wishlist_service.get_wishlist(wishlist.id, make_user().id)
        with pytest.raises(NotFoundError):
            wishlist_service.get_wishlist(wishlist.id, None)

    def test_public_wishlist_readable_not_writable(self, db_session, make_user, make_store, make_product):
        owner = make_user()
        other = make_user()
        wishlist = wishlist_service.create_wishlist(owner.id, {"name": "Wedding", "is_public": True})

        assert wishlist_service.get_wishlist(wishlist.id, None).id == wishlist.id
        with pytest.raises(NotFoundError):
            wishlist_service.update_wishlist(wishlist.id, other.id, {"name": "Mine now"})
        with pytest.raises(NotFoundError):
            wishlist_service.add_product_to_wishlist(wishlist.id, other.id, make_product(make_store()).id)

    def test_inactive_product_cannot_be_added(self, db_session, make_user, make_store, make_product):
        user = make_user()
        wishlist = wishlist_service.create_wishlist(user.id, {"name": "List"})
        with pytest.raises(NotFoundError):
            wishlist_service.add_product_to_wishlist(wishlist.id, user.id, make_product(make_store(), is_active=False).id)

    def test_routes(self, client, make_user, make_store, make_service, token_for):
        user = make_user()
        headers = auth_headers(token_for(user))
        service = make_service(make_store())

        resp = client.post("/api/wishlists", json={"name": "Spa days", "is_public": True}, headers=headers)
        assert resp.status_code == 201
        wishlist_id = resp.get_json()["wishlist"]["id"]

        resp = client.post(f"/api/wishlists/{wishlist_id}/items", json={"service_id": service.id}, headers=headers)
        assert resp.status_code == 201
        item_id = resp.get_json()["item"]["id"]

        resp = client.post(f"/api/wishlists/{wishlist_id}/items", json={}, headers=headers)
        assert resp.status_code == 400

        items = client.get(f"/api/wishlists/{wishlist_id}/items").get_json()["items"]
        assert items[0]["item"]["name"] == service.name

        assert client.delete(f"/api/wishlists/{wishlist_id}/items/{item_id}", headers=headers).status_code == 200
        assert client.delete(f"/api/wishlists/{wishlist_id}", headers=headers).status_code == 200
        assert client.get(f"/api/wishlists/{wishlist_id}").status_code == 404

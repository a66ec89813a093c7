"""
Tests for offer and cart models
"""
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from storefront_offers import AlreadyClaimed, CartView, ClaimAttemptState, Failed, Offer, Succeeded
from storefront_offers.models.claim import GENERIC_FAILURE_MESSAGE

from .conftest import offer_document

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


class TestOfferParsing:
    """Tests for reading offer documents."""

    def test_parse_backend_document(self):
        """Should map backend field names."""
        offer = Offer.model_validate(offer_document("o1", discount=15, products=["p1", "p2"]))

        assert offer.offer_id == "o1"
        assert offer.discount_value == 15
        assert offer.discount_kind == "percentage"
        assert offer.applicable_products == ["p1", "p2"]
        assert offer.placeholder is False

    def test_legacy_field_names(self):
        """Should fold legacy discount, productIds and validity fields."""
        offer = Offer.model_validate({
            "_id": "legacy",
            "title": "Old Offer",
            "discount": 10,
            "productIds": ["p9"],
            "validFrom": "2026-03-01T00:00:00Z",
            "validUntil": "2026-03-31T00:00:00Z",
        })

        assert offer.discount_value == 10
        assert offer.applicable_products == ["p9"]
        assert offer.start_date == datetime(2026, 3, 1, tzinfo=timezone.utc)
        assert offer.end_date == datetime(2026, 3, 31, tzinfo=timezone.utc)

    def test_current_field_wins_over_legacy(self):
        """Should prefer discountValue when both names are present."""
        doc = offer_document("o1", discount=15)
        doc["discount"] = 99

        assert Offer.model_validate(doc).discount_value == 15

    def test_populated_products_collapse_to_ids(self):
        """Should accept populated product documents."""
        doc = offer_document("o1", products=[{"_id": "p1", "name": "Apples"}, "p2"])

        assert Offer.model_validate(doc).applicable_products == ["p1", "p2"]

    def test_naive_dates_are_utc(self):
        """Should treat naive timestamps as UTC."""
        doc = offer_document("o1", endDate="2026-03-31T00:00:00")

        assert Offer.model_validate(doc).end_date.tzinfo is not None

    def test_missing_end_date_is_rejected(self):
        """Should reject an offer without an end date."""
        doc = offer_document("o1")
        del doc["endDate"]

        with pytest.raises(ValidationError):
            Offer.model_validate(doc)

    def test_negative_discount_is_rejected(self):
        """Should reject a negative discount."""
        with pytest.raises(ValidationError):
            Offer.model_validate(offer_document("o1", discount=-5))

    def test_empty_products_apply_to_all(self):
        offer = Offer.model_validate(offer_document("o1", products=[]))

        assert offer.applies_to_all_products


class TestOfferClaimability:
    """Tests for the offer validity window."""

    def _offer(self, **overrides):
        doc = offer_document(
            "o1",
            startDate="2026-03-01T00:00:00Z",
            endDate="2026-03-20T00:00:00Z",
        )
        doc.update(overrides)
        return Offer.model_validate(doc)

    def test_claimable_inside_window(self):
        assert self._offer().is_claimable(NOW)

    def test_not_claimable_before_start(self):
        assert not self._offer().is_claimable(NOW - timedelta(days=30))

    def test_not_claimable_after_end(self):
        assert not self._offer().is_claimable(NOW + timedelta(days=30))

    def test_not_claimable_when_inactive(self):
        assert not self._offer(isActive=False).is_claimable(NOW)

    def test_claimed_by(self):
        """Should read claims recorded on the offer, including populated users."""
        offer = self._offer(claimedBy=[
            {"user": "user-1", "claimedAt": "2026-03-05T00:00:00Z"},
            {"user": {"_id": "user-2", "name": "Sam"}},
        ])

        assert offer.is_claimed_by("user-1")
        assert offer.is_claimed_by("user-2")
        assert not offer.is_claimed_by("user-3")


class TestCartView:
    """Tests for the cart projection."""

    def test_populated_product_lines(self):
        """Should unpack populated products and discount annotations."""
        cart = CartView.model_validate({
            "_id": "cart-1",
            "items": [
                {
                    "_id": "line-1",
                    "product": {"_id": "p1", "name": "Apples", "price": 2.5},
                    "quantity": 2,
                    "appliedDiscount": {"offerId": "o1", "discountType": "percentage", "value": 15},
                },
                {"productId": "p7", "quantity": 1},
            ],
        })

        assert cart.product_ids() == ["p1", "p7"]
        assert cart.items[0].name == "Apples"
        assert cart.item_count == 3
        assert [i.product_id for i in cart.discounted_items("o1")] == ["p1"]
        assert cart.discounted_items("other") == []

    def test_zero_quantity_is_rejected(self):
        with pytest.raises(ValidationError):
            CartView.model_validate({"items": [{"productId": "p1", "quantity": 0}]})

    def test_empty(self):
        assert CartView.empty().items == []


class TestClaimOutcomes:
    """Tests for claim outcome values."""

    def test_outcome_flags(self):
        """Should mark which outcomes count as claimed."""
        assert Succeeded(2).claimed and Succeeded(2).refreshes_cart
        assert AlreadyClaimed().claimed and AlreadyClaimed().refreshes_cart
        assert not Failed().claimed and not Failed().refreshes_cart
        assert Failed().reason == GENERIC_FAILURE_MESSAGE
        assert Succeeded(2).state == ClaimAttemptState.SUCCEEDED

    def test_outcomes_compare_by_value(self):
        assert Succeeded(2) == Succeeded(2)
        assert AlreadyClaimed() == AlreadyClaimed()


class TestDocumentRoundTrip:
    """Tests for dumping models back to backend documents."""

    def test_to_dict_uses_backend_names(self):
        offer = Offer.from_dict(offer_document("o1", discount=15, products=["p1"]))

        doc = offer.to_dict()

        assert doc["_id"] == "o1"
        assert doc["discountValue"] == 15
        assert doc["applicableProducts"] == ["p1"]
        assert "offer_id" not in doc

    def test_dumped_offer_validates_back(self):
        """Should rebuild an equal offer from its own dump."""
        offer = Offer.from_dict(offer_document("o1", discount=15, products=["p1", "p2"]))

        assert Offer.from_dict(offer.to_dict()) == offer

    def test_snake_case_input_is_accepted(self):
        offer = Offer(
            offer_id="o2",
            title="Snake",
            discount_value=5,
            end_date=NOW + timedelta(days=1),
        )

        assert offer.to_dict()["_id"] == "o2"
        assert Offer.from_dict(offer.to_dict()) == offer

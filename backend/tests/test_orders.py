"""
Order flow tests.

Verifies:
- totals are recomputed server-side and line items snapshot the product
- inactive / missing products are refused
- tracking and payment drive the automatic status transitions
- owners and admins can read an order; other customers cannot
- admin listing filters and on-behalf ordering
"""

import pytest

from storefront.extensions import db
from storefront.models import Order
from storefront.models.users import LIFECYCLE_DEACTIVATED
from storefront.services import order_service

from conftest import address, make_user, order_payload


def _place(client, headers, items, **overrides):
    return client.post("/api/orders", headers=headers, json=order_payload(items, **overrides))


class TestCreateOrder:
    def test_totals_and_initial_state(self, client, customer_headers, lipstick, blush):
        resp = _place(
            client,
            customer_headers,
            [
                {"product_id": lipstick.id, "quantity": 2},
                {"product_id": blush.id, "quantity": 1},
            ],
            tax={"amount_cents": 200, "rate_bps": 800},
            shipping={"cost_cents": 500, "method": "express"},
        )

        assert resp.status_code == 201
        order = resp.json["data"]["order"]
        assert order["subtotal_cents"] == 2500
        assert order["total_cents"] == 3200
        assert order["status"] == "pending"
        assert order["payment"]["status"] == "pending"
        assert len(order["status_history"]) == 1
        assert order["status_history"][0]["status"] == "pending"
        assert len(order["order_number"]) == 10

    def test_items_snapshot_product(self, client, customer_headers, lipstick):
        resp = _place(client, customer_headers, [{"product_id": lipstick.id, "quantity": 1}])
        item = resp.json["data"]["order"]["items"][0]

        assert item["price_cents"] == 1000
        assert item["line_total_cents"] == 1000
        assert item["snapshot"]["name"] == "Velvet Lipstick"
        assert item["snapshot"]["sku"] == "LIP-001"
        assert item["snapshot"]["image"]["url"] == "https://cdn.example.com/p.jpg"

        lipstick.name = "Renamed Lipstick"
        db.session.commit()
        order = db.session.get(Order, resp.json["data"]["order"]["id"])
        assert order.items[0].product_name == "Velvet Lipstick"

    def test_client_totals_are_ignored(self, client, customer_headers, lipstick):
        resp = _place(
            client,
            customer_headers,
            [{"product_id": lipstick.id, "quantity": 1}],
            subtotal_cents=1,
            total_cents=1,
        )
        order = resp.json["data"]["order"]
        assert order["subtotal_cents"] == 1000
        assert order["total_cents"] == 1000

    def test_submitted_unit_price_is_used(self, client, customer_headers, lipstick):
        resp = _place(client, customer_headers, [{"product_id": lipstick.id, "quantity": 3, "price_cents": 900}])
        assert resp.json["data"]["order"]["subtotal_cents"] == 2700

    def test_total_never_negative(self, client, customer_headers, blush):
        resp = _place(
            client,
            customer_headers,
            [{"product_id": blush.id, "quantity": 1}],
            discount={"amount_cents": 5000, "code": "big", "type": "fixed"},
        )
        order = resp.json["data"]["order"]
        assert order["total_cents"] == 0
        assert order["discount"]["code"] == "BIG"

    def test_billing_defaults_to_shipping(self, client, customer_headers, lipstick):
        resp = _place(client, customer_headers, [{"product_id": lipstick.id, "quantity": 1}],
                      shipping_address=address(street="9 Elm St"))
        order = resp.json["data"]["order"]
        assert order["billing_address"]["street"] == "9 Elm St"
        assert order["customer"]["email"] == "customer@example.com"

    def test_inactive_product_rejected(self, client, customer_headers, lipstick):
        lipstick.lifecycle_state = LIFECYCLE_DEACTIVATED
        db.session.commit()

        resp = _place(client, customer_headers, [{"product_id": lipstick.id, "quantity": 1}])
        assert resp.status_code == 400
        assert db.session.query(Order).count() == 0

    def test_missing_product_rejected(self, client, customer_headers, db_session):
        resp = _place(client, customer_headers, [{"product_id": 9999, "quantity": 1}])
        assert resp.status_code == 400

    @pytest.mark.parametrize("overrides,field", [
        ({"items": []}, "items"),
        ({"shipping": {"method": "teleport"}}, "shipping.method"),
        ({"payment_method": "barter"}, "payment_method"),
        ({"shipping_address": {"street": "1 Main St"}}, "shipping_address.city"),
        ({"shipping_address": address(street="x" * 201)}, "shipping_address.street"),
        ({"customer": {"name": "N" * 101}}, "customer.name"),
        ({"customer": {"phone": "5" * 40}}, "customer.phone"),
        ({"customer": {"email": "nope"}}, "customer.email"),
    ])
    def test_payload_validation(self, client, customer_headers, lipstick, overrides, field):
        items = overrides.pop("items", [{"product_id": lipstick.id, "quantity": 1}])
        resp = _place(client, customer_headers, items, **overrides)
        assert resp.status_code == 400
        assert field in {e["field"] for e in resp.json["errors"]}

    def test_quantity_upper_bound(self, client, customer_headers, lipstick):
        resp = _place(client, customer_headers, [{"product_id": lipstick.id, "quantity": 1001}])
        assert resp.status_code == 400
        assert "items[0].quantity" in {e["field"] for e in resp.json["errors"]}

    def test_order_total_upper_bound(self, client, customer_headers, lipstick):
        resp = _place(client, customer_headers, [
            {"product_id": lipstick.id, "quantity": 3, "price_cents": 999_999_999},
        ])
        assert resp.status_code == 400
        assert resp.json["errors"][0]["field"] == "items"
        assert db.session.query(Order).count() == 0

    def test_customer_cannot_set_internal_note(self, client, customer_headers, lipstick):
        resp = _place(client, customer_headers, [{"product_id": lipstick.id, "quantity": 1}],
                      internal_note="VIP, waive shipping")
        assert resp.status_code == 400
        assert "internal_note" in {e["field"] for e in resp.json["errors"]}
        assert db.session.query(Order).count() == 0

    def test_confirmation_email_logged_on_order(self, client, customer_headers, lipstick, mailbox):
        resp = _place(client, customer_headers, [{"product_id": lipstick.id, "quantity": 1}])
        notifications = resp.json["data"]["order"]["notifications"]

        assert [n["type"] for n in notifications] == ["order-confirmation"]
        assert notifications[0]["status"] == "sent"
        assert mailbox.sent[0].recipient == "customer@example.com"

    def test_mail_outage_does_not_fail_checkout(self, client, app, customer_headers, lipstick):
        dispatcher = app.extensions["email_dispatcher"]
        dispatcher.primary.fail_with = RuntimeError("down")
        dispatcher.fallback.fail_with = RuntimeError("down")

        resp = _place(client, customer_headers, [{"product_id": lipstick.id, "quantity": 1}])

        assert resp.status_code == 201
        assert resp.json["data"]["order"]["notifications"][0]["status"] == "pending"

    def test_admin_cannot_use_customer_checkout(self, client, admin_headers, lipstick):
        resp = _place(client, admin_headers, [{"product_id": lipstick.id, "quantity": 1}])
        assert resp.status_code == 403


class TestCheckoutJourney:
    def test_register_login_then_order(self, client, lipstick):
        registered = client.post("/api/auth/register", json={
            "name": "Rory Williams",
            "email": "rory@example.com",
            "password": "centurion1",
        })
        assert registered.status_code == 201

        login = client.post("/api/auth/login", json={"email": "rory@example.com", "password": "centurion1"})
        assert login.status_code == 200
        headers = {"Authorization": f"Bearer {login.json['data']['access_token']}"}

        resp = _place(client, headers, [{"product_id": lipstick.id, "quantity": 2}])

        assert resp.status_code == 201
        order = resp.json["data"]["order"]
        assert order["user_id"] == login.json["data"]["user"]["id"]
        assert order["customer"]["email"] == "rory@example.com"
        assert order["subtotal_cents"] == 2000
        assert client.get("/api/orders/mine", headers=headers).json["data"]["pagination"]["total"] == 1


class TestOrderOnBehalf:
    def test_admin_orders_for_customer(self, client, admin, admin_headers, customer, lipstick):
        resp = client.post(
            f"/api/orders/user/{customer.id}",
            headers=admin_headers,
            json=order_payload([{"product_id": lipstick.id, "quantity": 1}], internal_note="phone order"),
        )
        assert resp.status_code == 201
        order = resp.json["data"]["order"]
        assert order["user_id"] == customer.id
        assert order["status_history"][0]["updated_by"] == admin.id
        assert order["notes"]["internal"] == "phone order"

    def test_inactive_customer_rejected(self, client, admin_headers, lipstick, db_session):
        target = make_user(email="gone@example.com", lifecycle_state=LIFECYCLE_DEACTIVATED)
        resp = client.post(
            f"/api/orders/user/{target.id}",
            headers=admin_headers,
            json=order_payload([{"product_id": lipstick.id, "quantity": 1}]),
        )
        assert resp.status_code == 400


class TestOrderAccess:
    def test_owner_and_admin_can_read(self, client, customer_headers, admin_headers, lipstick):
        order_id = _place(client, customer_headers, [{"product_id": lipstick.id, "quantity": 1}]).json["data"]["order"]["id"]

        owner = client.get(f"/api/orders/{order_id}", headers=customer_headers)
        assert owner.status_code == 200
        assert "internal" not in owner.json["data"]["order"]["notes"]

        admin = client.get(f"/api/orders/{order_id}", headers=admin_headers)
        assert admin.status_code == 200
        assert "internal" in admin.json["data"]["order"]["notes"]

    def test_other_customer_is_forbidden(self, client, customer_headers, other_headers, lipstick):
        order_id = _place(client, customer_headers, [{"product_id": lipstick.id, "quantity": 1}]).json["data"]["order"]["id"]
        resp = client.get(f"/api/orders/{order_id}", headers=other_headers)
        assert resp.status_code == 403

    def test_missing_order_is_404(self, client, customer_headers):
        assert client.get("/api/orders/424242", headers=customer_headers).status_code == 404

    def test_my_orders_only_lists_own(self, client, customer_headers, other_headers, lipstick):
        _place(client, customer_headers, [{"product_id": lipstick.id, "quantity": 1}])
        _place(client, customer_headers, [{"product_id": lipstick.id, "quantity": 2}])
        _place(client, other_headers, [{"product_id": lipstick.id, "quantity": 1}])

        resp = client.get("/api/orders/mine", headers=customer_headers)
        data = resp.json["data"]
        assert data["count"] == 2
        assert data["pagination"]["total"] == 2
        assert data["pagination"]["per_page"] == 10
        # newest first
        assert data["items"][0]["items"][0]["quantity"] == 2


class TestTransitions:
    def _order(self, client, headers, product):
        return _place(client, headers, [{"product_id": product.id, "quantity": 1}]).json["data"]["order"]["id"]

    def test_tracking_on_processing_ships(self, client, customer_headers, admin_headers, lipstick):
        order_id = self._order(client, customer_headers, lipstick)
        client.put(f"/api/orders/{order_id}/status", headers=admin_headers, json={"status": "processing"})

        resp = client.post(f"/api/orders/{order_id}/tracking", headers=admin_headers, json={
            "carrier": "UPS",
            "tracking_number": "1Z999",
        })
        assert resp.status_code == 200
        order = resp.json["data"]["order"]
        assert order["status"] == "shipped"
        assert order["tracking"]["tracking_number"] == "1Z999"
        assert order["tracking"]["shipped_at"] is not None
        assert [h["status"] for h in order["status_history"]] == ["pending", "processing", "shipped"]

    def test_tracking_on_pending_keeps_status(self, client, customer_headers, admin_headers, lipstick):
        order_id = self._order(client, customer_headers, lipstick)
        resp = client.post(f"/api/orders/{order_id}/tracking", headers=admin_headers,
                           json={"tracking_number": "1Z999"})
        assert resp.json["data"]["order"]["status"] == "pending"

    def test_tracking_number_required(self, client, customer_headers, admin_headers, lipstick):
        order_id = self._order(client, customer_headers, lipstick)
        resp = client.post(f"/api/orders/{order_id}/tracking", headers=admin_headers, json={"carrier": "UPS"})
        assert resp.status_code == 400

    def test_payment_on_pending_confirms(self, client, customer_headers, admin_headers, lipstick):
        order_id = self._order(client, customer_headers, lipstick)
        resp = client.post(f"/api/orders/{order_id}/payment", headers=admin_headers,
                           json={"transaction_id": "txn_1", "payment_method": "paypal"})
        assert resp.status_code == 200
        order = resp.json["data"]["order"]
        assert order["status"] == "confirmed"
        assert order["payment"]["status"] == "completed"
        assert order["payment"]["method"] == "paypal"
        assert order["payment"]["paid_at"] is not None

    def test_payment_on_shipped_keeps_status(self, client, customer_headers, admin_headers, lipstick):
        order_id = self._order(client, customer_headers, lipstick)
        client.put(f"/api/orders/{order_id}/status", headers=admin_headers, json={"status": "shipped"})
        resp = client.post(f"/api/orders/{order_id}/payment", headers=admin_headers, json={"transaction_id": "t"})
        assert resp.json["data"]["order"]["status"] == "shipped"

    def test_same_status_still_appends_history(self, client, customer_headers, admin_headers, lipstick):
        order_id = self._order(client, customer_headers, lipstick)
        resp = client.put(f"/api/orders/{order_id}/status", headers=admin_headers,
                          json={"status": "pending", "note": "checked"})
        history = resp.json["data"]["order"]["status_history"]
        assert len(history) == 2
        assert history[-1]["note"] == "checked"

    def test_invalid_status(self, client, customer_headers, admin_headers, lipstick):
        order_id = self._order(client, customer_headers, lipstick)
        resp = client.put(f"/api/orders/{order_id}/status", headers=admin_headers, json={"status": "lost"})
        assert resp.status_code == 400

    def test_customer_cannot_change_status(self, client, customer_headers, lipstick):
        order_id = self._order(client, customer_headers, lipstick)
        resp = client.put(f"/api/orders/{order_id}/status", headers=customer_headers, json={"status": "cancelled"})
        assert resp.status_code == 403

    def test_status_change_emails_customer(self, client, customer_headers, admin_headers, lipstick, mailbox):
        order_id = self._order(client, customer_headers, lipstick)
        mailbox.clear()
        client.put(f"/api/orders/{order_id}/status", headers=admin_headers, json={"status": "processing"})
        assert len(mailbox.sent) == 1
        assert "processing" in mailbox.sent[0].body.lower()

    def test_delivery_instructions(self, client, customer_headers, admin_headers, lipstick, mailbox):
        order_id = self._order(client, customer_headers, lipstick)
        mailbox.clear()
        resp = client.post(f"/api/orders/{order_id}/delivery-instructions", headers=admin_headers,
                           json={"instructions": "Leave at the back door."})
        assert resp.status_code == 200
        assert resp.json["data"]["queued"] == 1
        assert "Leave at the back door." in mailbox.sent[0].body


class TestAdminListing:
    def test_filters(self, client, customer, customer_headers, other_headers, admin_headers, lipstick):
        first = _place(client, customer_headers, [{"product_id": lipstick.id, "quantity": 1}]).json["data"]["order"]
        _place(client, other_headers, [{"product_id": lipstick.id, "quantity": 1}])
        client.put(f"/api/orders/{first['id']}/status", headers=admin_headers, json={"status": "processing"})

        everything = client.get("/api/orders", headers=admin_headers).json["data"]
        assert everything["count"] == 2
        assert everything["pagination"]["per_page"] == 20

        processing = client.get("/api/orders?status=processing", headers=admin_headers).json["data"]
        assert [o["id"] for o in processing["items"]] == [first["id"]]

        mine = client.get(f"/api/orders?user_id={customer.id}", headers=admin_headers).json["data"]
        assert [o["user_id"] for o in mine["items"]] == [customer.id]

        future = client.get("/api/orders?start_date=2999-01-01T00:00:00Z", headers=admin_headers).json["data"]
        assert future["count"] == 0

    def test_limit_is_clamped(self, client, admin_headers, db_session):
        resp = client.get("/api/orders?limit=500", headers=admin_headers)
        assert resp.json["data"]["pagination"]["per_page"] == 100

    def test_customer_cannot_list_all(self, client, customer_headers):
        assert client.get("/api/orders", headers=customer_headers).status_code == 403


class TestComputeTotal:
    @pytest.mark.parametrize("subtotal,tax,shipping,discount,expected", [
        (2500, 200, 500, 0, 3200),
        (1000, 0, 0, 250, 750),
        (500, 0, 0, 5000, 0),
    ])
    def test_compute_total(self, subtotal, tax, shipping, discount, expected):
        assert order_service.compute_total(subtotal, tax, shipping, discount) == expected

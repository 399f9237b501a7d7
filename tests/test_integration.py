from bookmarket.models import Order


def test_full_order_payment_lifecycle_integration(client, db, mocker):
    """
    Test the full lifecycle:
    1. Create order (API -> DB)
    2. Open checkout session (API -> Stripe Mocked)
    3. Return from Stripe with the session id (API -> Stripe Mocked -> DB)
    4. Duplicate webhook for the same payment (Stripe -> API, no change)
    5. The paid order shows up as an invoice
    """

    # --- 1. CREATE ORDER ---
    response = client.post("/orders", json={
        "bookId": "book-7",
        "bookName": "Middlemarch",
        "sellerEmail": "seller@example.com",
        "customerEmail": "reader@example.com",
        "price": 500,
    })
    assert response.status_code == 200
    order_id = response.json()["insertedId"]

    # --- 2. CHECKOUT ---
    mock_session = mocker.Mock()
    mock_session.id = "cs_integration_1"
    mock_session.url = "https://checkout.stripe.com/c/pay/cs_integration_1"
    create = mocker.patch("stripe.checkout.Session.create", return_value=mock_session)

    checkout = client.post("/create-checkout-session", json={
        "price": 500,
        "bookName": "Middlemarch",
        "customer_email": "reader@example.com",
        "orderId": order_id,
    })

    assert checkout.json()["url"] == mock_session.url
    assert create.call_args.kwargs["metadata"]["orderId"] == order_id

    # --- 3. PAYMENT SUCCESS REDIRECT ---
    session = {
        "id": "cs_integration_1",
        "payment_status": "paid",
        "payment_intent": "pi_integration_1",
        "metadata": {"orderId": order_id},
    }
    mocker.patch("stripe.checkout.Session.retrieve", return_value=session)

    reconciled = client.patch("/payment-success", params={"session_id": "cs_integration_1"})
    assert reconciled.json()["applied"] is True

    order = db.get(Order, order_id)
    assert order.status == "paid"
    assert order.payment_status == "paid"
    assert order.transaction_id == "pi_integration_1"
    paid_at = order.paid_at

    # --- 4. DUPLICATE WEBHOOK ---
    construct = mocker.patch("stripe.Webhook.construct_event", return_value={
        "type": "checkout.session.completed",
        "data": {"object": session},
    })
    mocker.patch("bookmarket.config.STRIPE_WEBHOOK_SECRET", "whsec_test")

    webhook = client.post("/webhook", content="raw_stripe_payload",
                          headers={"stripe-signature": "test_signature"})
    assert webhook.json() == {"ok": True}
    assert construct.call_args.args[2] == "whsec_test"

    db.expire_all()
    assert db.get(Order, order_id).paid_at == paid_at

    # --- 5. INVOICE ---
    invoices = client.get("/invoices/reader@example.com").json()
    assert [i["id"] for i in invoices] == [order_id]
    assert invoices[0]["paymentStatus"] == "paid"


def test_paid_order_can_still_be_cancelled_by_admin(client, db, add_user, add_order, auth_header):
    add_user("admin@example.com", role="admin")
    order_id = add_order(status="paid", payment_status="paid", transaction_id="pi_1")

    response = client.patch(f"/orders/{order_id}", json={"status": "cancelled"},
                            headers=auth_header("admin@example.com"))

    assert response.status_code == 200
    db.expire_all()
    order = db.get(Order, order_id)
    assert order.status == "cancelled"
    assert order.payment_status == "paid"

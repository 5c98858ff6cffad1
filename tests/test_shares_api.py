def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json()["status"] == "ok"


def test_share_request_requires_token(client, make_business):
    business = make_business()
    response = client.post("/shares/request", json={"business_id": business.id, "requested_shares": 5})
    assert response.status_code == 401


def test_request_approve_and_reject_flow(client, make_user, make_business, auth_headers, admin_headers):
    investor = make_user("investor")
    business = make_business(total=100)
    headers = auth_headers(investor)

    created = client.post(
        "/shares/request",
        json={"businessId": business.id, "requestedShares": 30},
        headers=headers,
    )
    assert created.status_code == 201
    share_request = created.get_json()["share_request"]
    assert share_request["status"] == "pending"
    assert share_request["total_amount"] == 300.0

    pending = client.get("/shares/pending", headers=admin_headers)
    assert [r["id"] for r in pending.get_json()] == [share_request["id"]]

    # investors cannot approve
    assert client.put(f"/shares/{share_request['id']}/approve", headers=headers).status_code == 403

    approved = client.put(
        f"/shares/{share_request['id']}/approve", json={"approved_shares": 25}, headers=admin_headers
    )
    assert approved.status_code == 200
    body = approved.get_json()
    assert body["share_request"]["approved_shares"] == 25
    assert body["investment"]["amount"] == 250.0

    again = client.put(f"/shares/{share_request['id']}/reject", json={"reason": "x"}, headers=admin_headers)
    assert again.status_code == 409
    assert again.get_json()["error"] == "StateError"

    mine = client.get("/investor/investments", headers=headers).get_json()
    assert mine["total_invested"] == 250.0
    assert len(mine["investments"]) == 1


def test_capacity_and_duplicate_errors(client, make_user, make_business, auth_headers, admin_headers):
    business = make_business(total=10)
    a, b = make_user("investor"), make_user("investor")

    too_many = client.post(
        "/shares/request", json={"business_id": business.id, "requested_shares": 11}, headers=auth_headers(a)
    )
    assert too_many.status_code == 409
    assert too_many.get_json()["error"] == "CapacityError"

    first = client.post(
        "/shares/request", json={"business_id": business.id, "requested_shares": 8}, headers=auth_headers(a)
    ).get_json()["share_request"]
    duplicate = client.post(
        "/shares/request", json={"business_id": business.id, "requested_shares": 1}, headers=auth_headers(a)
    )
    assert duplicate.status_code == 409
    assert duplicate.get_json()["error"] == "ConflictError"

    second = client.post(
        "/shares/request", json={"business_id": business.id, "requested_shares": 8}, headers=auth_headers(b)
    ).get_json()["share_request"]

    assert client.put(f"/shares/{first['id']}/approve", headers=admin_headers).status_code == 200
    short = client.put(f"/shares/{second['id']}/approve", headers=admin_headers)
    assert short.status_code == 409
    assert short.get_json()["error"] == "CapacityError"


def test_bad_share_count_is_a_validation_error(client, make_user, make_business, auth_headers):
    business = make_business()
    response = client.post(
        "/shares/request",
        json={"business_id": business.id, "requested_shares": "lots"},
        headers=auth_headers(make_user("investor")),
    )
    assert response.status_code == 400
    assert response.get_json()["error"] == "ValidationError"


def test_admin_can_request_on_behalf_of_investor(client, make_user, make_business, admin_headers):
    investor = make_user("investor")
    business = make_business()
    response = client.post(
        "/shares/request",
        json={"business_id": business.id, "investor_id": investor.id, "requested_shares": 2},
        headers=admin_headers,
    )
    assert response.status_code == 201
    assert response.get_json()["share_request"]["investor_id"] == investor.id


def test_investor_flow_requires_active_listing(client, make_user, make_business, auth_headers):
    headers = auth_headers(make_user("investor"))
    inactive = make_business(status="approved")
    active = make_business(title="Open listing")

    listed = client.get("/investor/businesses", headers=headers).get_json()
    assert [b["id"] for b in listed] == [active.id]

    missing = client.post(f"/investor/businesses/{inactive.id}/request-shares", json={"shares": 1}, headers=headers)
    assert missing.status_code == 404

    ok = client.post(f"/investor/businesses/{active.id}/request-shares", json={"shares": 3}, headers=headers)
    assert ok.status_code == 201
    requests = client.get("/investor/share-requests", headers=headers).get_json()
    assert requests[0]["business_title"] == "Open listing"


def test_submission_review_over_http(client, make_user, auth_headers, admin_headers):
    owner = make_user("entrepreneur")
    owner_headers = auth_headers(owner)

    submitted = client.post("/entrepreneur/businesses", json={"title": "Coffee Co"}, headers=owner_headers)
    assert submitted.status_code == 201
    submission_id = submitted.get_json()["business"]["id"]

    approved = client.post(
        f"/admin/businesses/{submission_id}/approve",
        json={"description": "Roastery", "total_shares": 100, "share_value": 15},
        headers=admin_headers,
    )
    assert approved.status_code == 200
    public = approved.get_json()["business"]
    assert public["remaining_shares"] == 100

    edited = client.put(
        f"/admin/businesses/public/{public['id']}", json={"totalShares": 50}, headers=admin_headers
    )
    assert edited.get_json()["business"]["remaining_shares"] == 50

    mine = client.get("/entrepreneur/businesses", headers=owner_headers).get_json()
    assert {b["type"] for b in mine} == {"submission", "public"}

    notes = client.get("/notifications", headers=owner_headers).get_json()
    assert notes["unread"] == 1
    assert notes["notifications"][0]["type"] == "business_status"


def test_admin_creates_public_listing_and_manages_investments(client, make_user, admin_headers, auth_headers):
    created = client.post(
        "/admin/businesses/public",
        json={"title": "Harbor", "description": "Marina", "total_shares": 40, "share_value": "12.50"},
        headers=admin_headers,
    )
    assert created.status_code == 201
    business = created.get_json()["business"]
    assert business["status"] == "active"

    bad = client.post(
        "/admin/businesses/public", json={"title": "No terms", "description": "x"}, headers=admin_headers
    )
    assert bad.status_code == 400

    investor = make_user("investor")
    sr = client.post(
        "/shares/request",
        json={"business_id": business["id"], "requested_shares": 4},
        headers=auth_headers(investor),
    ).get_json()["share_request"]
    investment = client.put(f"/shares/{sr['id']}/approve", headers=admin_headers).get_json()["investment"]
    assert investment["amount"] == 50.0

    listed = client.get(f"/admin/investments?business_id={business['id']}", headers=admin_headers).get_json()
    assert [i["id"] for i in listed] == [investment["id"]]

    patched = client.patch(
        f"/admin/investments/{investment['id']}/status", json={"status": "rejected"}, headers=admin_headers
    )
    assert patched.get_json()["investment"]["status"] == "rejected"

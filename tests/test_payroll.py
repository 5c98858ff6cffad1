import pytest

from skyinvest.errors import StateError, ValidationError
from skyinvest.services import payroll_service


@pytest.fixture()
def employee(app):
    return payroll_service.create_employee({
        "name": "Aline",
        "email": "aline@skyinvest.test",
        "position": "Accountant",
        "department": "Finance",
        "employment_type": "full-time",
        "salary": "800000",
    })


def test_net_amount_is_recomputed(employee):
    payroll = payroll_service.create_payroll({
        "employee_id": employee.id,
        "period_start": "2024-01-01",
        "period_end": "2024-01-31",
        "deductions": "50000",
        "taxes": "120000",
    })
    assert payroll.status == "draft"
    assert float(payroll.salary) == 800000.0
    assert float(payroll.net_amount) == 630000.0

    updated = payroll_service.update_payroll(payroll.id, {"taxes": "100000"})
    assert float(updated.net_amount) == 650000.0


def test_payroll_validation(employee):
    with pytest.raises(ValidationError):
        payroll_service.create_payroll({
            "employee_id": employee.id, "period_start": "2024-02-01", "period_end": "2024-01-01",
        })
    with pytest.raises(ValidationError):
        payroll_service.create_payroll({
            "employee_id": employee.id, "period_start": "2024-01-01", "period_end": "2024-01-31",
            "salary": 100, "deductions": 80, "taxes": 30,
        })
    with pytest.raises(ValidationError):
        payroll_service.create_payroll({
            "employee_id": employee.id, "period_start": "2024-01-01", "period_end": "2024-01-31",
            "deductions": -1,
        })


def test_invalid_edit_leaves_record_untouched(employee):
    payroll = payroll_service.create_payroll({
        "employee_id": employee.id, "period_start": "2024-01-01", "period_end": "2024-01-31",
    })
    with pytest.raises(ValidationError):
        payroll_service.update_payroll(payroll.id, {"deductions": "900000"})
    assert float(payroll_service.get_payroll(payroll.id).net_amount) == 800000.0


def test_paid_payroll_is_frozen(employee):
    payroll = payroll_service.create_payroll({
        "employee_id": employee.id, "period_start": "2024-01-01", "period_end": "2024-01-31",
    })
    paid = payroll_service.mark_payroll_paid(payroll.id, payment_method="bank_transfer")
    assert paid.status == "paid"
    assert paid.payment_date is not None

    with pytest.raises(StateError):
        payroll_service.mark_payroll_paid(payroll.id)
    with pytest.raises(StateError):
        payroll_service.update_payroll(payroll.id, {"taxes": 1})


def test_payroll_over_http(client, admin_headers):
    created = client.post("/employees", json={
        "name": "Eric", "email": "eric@skyinvest.test", "position": "Driver",
        "employment_type": "contract", "salary": 300000,
    }, headers=admin_headers)
    assert created.status_code == 201
    employee_id = created.get_json()["employee"]["id"]

    bad_type = client.put(f"/employees/{employee_id}", json={"employment_type": "gig"}, headers=admin_headers)
    assert bad_type.status_code == 400

    payroll = client.post("/payroll", json={
        "employeeId": employee_id, "periodStart": "2024-02-01", "periodEnd": "2024-02-29", "taxes": 30000,
    }, headers=admin_headers).get_json()["payroll"]
    assert payroll["net_amount"] == 270000.0
    assert payroll["employee_name"] == "Eric"

    paid = client.patch(f"/payroll/{payroll['id']}/paid", json={}, headers=admin_headers)
    assert paid.get_json()["payroll"]["status"] == "paid"

    listed = client.get(f"/payroll?employee_id={employee_id}&status=paid", headers=admin_headers).get_json()
    assert [p["id"] for p in listed] == [payroll["id"]]

    assert client.post("/payroll", json={"employee_id": 999}, headers=admin_headers).status_code == 404
    assert [e["name"] for e in client.get("/employees", headers=admin_headers).get_json()] == ["Eric"]


def test_attendance_records_and_date_window(employee):
    for day, status, hours in (("2024-03-01", "present", 8), ("2024-03-02", "sick_leave", None),
                               ("2024-03-05", "present", "7.5")):
        payroll_service.record_attendance(employee.id, {"date": day, "status": status, "hours_worked": hours})

    window = payroll_service.list_attendance(employee.id, "2024-03-01", "2024-03-02")
    assert [a.date.isoformat() for a in window] == ["2024-03-02", "2024-03-01"]
    assert float(window[0].hours_worked) == 0.0

    everything = payroll_service.list_attendance(employee.id)
    assert float(everything[0].hours_worked) == 7.5

    for bad in ({"date": "2024-03-06"}, {"date": "2024-03-06", "status": "remote"},
                {"date": "2024-03-06", "status": "present", "hours_worked": 25}):
        with pytest.raises(ValidationError):
            payroll_service.record_attendance(employee.id, bad)


def test_performance_reviews(employee, admin):
    payroll_service.add_performance_review(employee.id, {
        "review_date": "2024-01-15", "rating": 3, "feedback": "Solid quarter",
    }, reviewer_id=admin.id)
    latest = payroll_service.add_performance_review(employee.id, {
        "reviewDate": "2024-04-15", "rating": "5", "feedback": "Closed the books early",
        "strengths": "Accuracy",
    }, reviewer_id=admin.id)
    assert latest.to_dict()["reviewer_name"] == admin.name

    reviews = payroll_service.list_performance_reviews(employee.id)
    assert [r.rating for r in reviews] == [5, 3]

    for rating in (0, 6, "great"):
        with pytest.raises(ValidationError):
            payroll_service.add_performance_review(employee.id, {
                "review_date": "2024-05-01", "rating": rating, "feedback": "x",
            })
    with pytest.raises(ValidationError):
        payroll_service.add_performance_review(employee.id, {"review_date": "2024-05-01", "rating": 4})


def test_employee_records_over_http(client, admin_headers, employee):
    employee_id = employee.id
    attendance = client.post(f"/employees/attendance/{employee_id}", json={
        "date": "2024-02-01", "status": "present", "hoursWorked": 8,
    }, headers=admin_headers)
    assert attendance.status_code == 201
    listed = client.get(f"/employees/attendance/{employee_id}?startDate=2024-02-01&endDate=2024-02-01",
                        headers=admin_headers).get_json()
    assert [a["status"] for a in listed] == ["present"]

    review = client.post(f"/employees/performance/{employee_id}", json={
        "review_date": "2024-02-10", "rating": 4, "feedback": "Reliable",
    }, headers=admin_headers).get_json()["review"]
    assert review["reviewer_id"] is not None
    assert len(client.get(f"/employees/performance/{employee_id}", headers=admin_headers).get_json()) == 1

    payroll_service.create_payroll({
        "employee_id": employee_id, "period_start": "2024-01-01", "period_end": "2024-01-31",
    })
    assert client.delete(f"/employees/{employee_id}", headers=admin_headers).status_code == 200
    assert client.delete(f"/employees/{employee_id}", headers=admin_headers).status_code == 404
    assert client.get(f"/employees/attendance/{employee_id}", headers=admin_headers).status_code == 404
    assert payroll_service.list_payroll(employee_id) == []

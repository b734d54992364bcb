from decimal import Decimal

from app.core.security import hash_password
from app.models.role import RoleName, UserRole
from app.models.user import User
from app.services.billing_numbers import format_invoice_number
from app.utils.jwt import create_access_token
from app.utils.timezone import today_local
from tests.helpers import patient_payload


def _money(v):
    return Decimal(str(v))


def test_register_bill_pay_results_report(client, auth_headers, catalog):
    cashier = auth_headers("cash1", role=RoleName.CASHIER)
    tech = auth_headers("tech1", role=RoleName.LAB_TECHNICIAN)

    # register
    r = client.post("/api/patients", headers=cashier,
                    json=patient_payload([catalog["cbc"].id, catalog["lipid"].id]))
    assert r.status_code == 201
    pid = r.json()["patient"]["id"]

    # bill
    r = client.post("/api/bills", headers=cashier,
                    json={"patientId": pid, "discount": 100})
    assert r.status_code == 201
    bill = r.json()["bill"]
    assert _money(bill["totalAmount"]) == Decimal("1300.00")
    assert _money(bill["finalAmount"]) == Decimal("1200.00")
    assert bill["invoiceNumber"] == format_invoice_number(today_local(), 1)
    assert bill["isPaid"] is False

    tests = client.get(f"/api/patients/{pid}/tests", headers=tech).json()
    assert {t["status"] for t in tests} == {"billed"}

    # second bill is refused
    r = client.post("/api/bills", headers=cashier, json={"patientId": pid})
    assert r.status_code == 409
    assert r.json()["error"]["msg"] == "Bill already exists for this patient"

    results = []
    for t in tests:
        for p in t["parameters"]:
            results.append({
                "patientTestId": t["patientTestId"],
                "parameterId": p["id"],
                "value": "15" if p["parameterName"] == "Hemoglobin" else "180",
            })
    submit = {
        "results": results,
        "patientTestIds": [t["patientTestId"] for t in tests],
        "impressions": [{"patientTestId": tests[0]["patientTestId"],
                         "impression": "Normal study"}],
    }

    # unpaid bill blocks result entry
    r = client.post("/api/test-results", headers=tech, json=submit)
    assert r.status_code == 409

    # pay
    r = client.patch(f"/api/bills/{bill['id']}/payment", headers=cashier,
                     json={"isPaid": True})
    assert r.status_code == 200
    assert r.json()["bill"]["isPaid"] is True

    # results
    r = client.post("/api/test-results", headers=tech, json=submit)
    assert r.status_code == 200
    assert r.json()["resultsSaved"] == 3

    tests = client.get(f"/api/patients/{pid}/tests", headers=tech).json()
    assert {t["status"] for t in tests} == {"completed"}

    # report
    r = client.get(f"/api/reports/patients/{pid}", headers=tech)
    assert r.status_code == 200
    report = r.json()
    assert report["patient"]["fullName"] == "Jane Doe"
    assert report["doctor"] is None
    assert report["bill"]["isPaid"] is True
    assert all(row["resultValue"] for row in report["tests"])
    hb = next(row for row in report["tests"] if row["parameterName"] == "Hemoglobin")
    assert hb["flag"] == "N"
    assert hb["normalRange"] == "13-17"
    assert report["sections"][0]["reportImpression"] == "Normal study"


def test_bill_endpoints_and_roles(client, auth_headers, catalog):
    cashier = auth_headers("cash1", role=RoleName.CASHIER)
    tech = auth_headers("tech1", role=RoleName.LAB_TECHNICIAN)
    pid = client.post("/api/patients", headers=cashier,
                      json=patient_payload([catalog["cbc"].id])).json()["patient"]["id"]

    assert client.post("/api/bills", headers=tech,
                       json={"patientId": pid}).status_code == 403

    r = client.post("/api/bills", headers=cashier,
                    json={"patientId": pid, "discount": 501})
    assert r.status_code == 422

    view = client.get(f"/api/bills/patients/{pid}/view", headers=cashier).json()
    assert view["bill"] is None
    assert [l["testName"] for l in view["lines"]] == ["CBC"]

    bill = client.post("/api/bills", headers=cashier,
                       json={"patientId": pid}).json()["bill"]

    got = client.get(f"/api/bills/{bill['id']}", headers=cashier).json()
    assert got["patient"]["id"] == pid
    assert got["bill"]["invoiceNumber"] == bill["invoiceNumber"]

    found = client.get("/api/bills/search", headers=cashier,
                       params={"q": "jane"}).json()["results"]
    assert [b["invoiceNumber"] for b in found] == [bill["invoiceNumber"]]

    with_bills = client.get("/api/patients/with-bills", headers=cashier).json()
    assert with_bills[0]["bill"]["invoiceNumber"] == bill["invoiceNumber"]
    assert with_bills[0]["testCount"] == 1

    assert client.get("/api/bills/999", headers=cashier).status_code == 404
    assert client.patch("/api/bills/999/payment", headers=cashier,
                        json={"isPaid": True}).status_code == 404


def test_payment_permission_tag(client, auth_headers, catalog):
    cashier = auth_headers("cash1", role=RoleName.CASHIER)
    tech_with_payments = auth_headers("tech2", role=RoleName.LAB_TECHNICIAN,
                                      permissions=["payments"])
    pid = client.post("/api/patients", headers=cashier,
                      json=patient_payload([catalog["cbc"].id])).json()["patient"]["id"]
    bill = client.post("/api/bills", headers=cashier,
                       json={"patientId": pid}).json()["bill"]

    r = client.patch(f"/api/bills/{bill['id']}/payment", headers=tech_with_payments,
                     json={"isPaid": True})
    assert r.status_code == 200


def test_report_requires_a_lab_role_or_tag(db, client, lab, catalog, make_patient):
    auditor = UserRole(role_name="auditor", description="Read-only visitor")
    db.add(auditor)
    db.flush()
    db.add_all([
        User(user_id="aud1", password=hash_password("secret123"), full_name="Aud One",
             role_id=auditor.id, lab_info_id=lab.id, permissions="[]"),
        User(user_id="aud2", password=hash_password("secret123"), full_name="Aud Two",
             role_id=auditor.id, lab_info_id=lab.id, permissions='["reports"]'),
    ])
    db.commit()
    patient = make_patient([catalog["cbc"].id])

    def headers(user_id):
        return {"Authorization": f"Bearer {create_access_token(subject=user_id, role='auditor')}"}

    r = client.get(f"/api/reports/patients/{patient.id}", headers=headers("aud1"))
    assert r.status_code == 403

    r = client.get(f"/api/reports/patients/{patient.id}", headers=headers("aud2"))
    assert r.status_code == 200
    assert r.json()["patient"]["id"] == patient.id

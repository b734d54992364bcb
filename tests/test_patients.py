from app.models.role import RoleName
from tests.helpers import patient_payload


def test_register_patient_assigns_code_and_pending_tests(client, auth_headers, catalog):
    headers = auth_headers("cash1", role=RoleName.CASHIER)
    r = client.post("/api/patients", headers=headers,
                    json=patient_payload([catalog["cbc"].id, catalog["lipid"].id]))
    assert r.status_code == 201
    body = r.json()
    patient = body["patient"]
    assert patient["patientId"] == f"PATNO-{patient['id']:07d}"
    assert body["testIds"] == [catalog["cbc"].id, catalog["lipid"].id]

    tech = auth_headers("tech1", role=RoleName.LAB_TECHNICIAN)
    tests = client.get(f"/api/patients/{patient['id']}/tests", headers=tech).json()
    assert [t["status"] for t in tests] == ["pending", "pending"]
    assert [p["parameterName"] for p in tests[0]["parameters"]] == ["Hemoglobin", "WBC"]


def test_registration_validation_happens_before_db(client, auth_headers, catalog):
    headers = auth_headers("cash1")
    bad = [
        patient_payload([catalog["cbc"].id], patientConsent=False),
        patient_payload([catalog["cbc"].id], pincode="12345"),
        patient_payload([catalog["cbc"].id], phoneNumber="12345"),
        patient_payload([catalog["cbc"].id], gender="Unknown"),
        patient_payload([catalog["cbc"].id], age=-1),
        patient_payload([]),
    ]
    for body in bad:
        r = client.post("/api/patients", headers=headers, json=body)
        assert r.status_code == 422, body
        assert r.json()["ok"] is False

    assert client.get("/api/patients", headers=headers).json() == []


def test_unknown_test_or_doctor_is_not_found(client, auth_headers, catalog):
    headers = auth_headers("cash1")
    r = client.post("/api/patients", headers=headers, json=patient_payload([999]))
    assert r.status_code == 404

    r = client.post("/api/patients", headers=headers,
                    json=patient_payload([catalog["cbc"].id], referredBy=77))
    assert r.status_code == 404


def test_list_and_search_patients(client, auth_headers, catalog):
    headers = auth_headers("cash1")
    for name in ("Jane Doe", "John Roe", "Ann Lee"):
        client.post("/api/patients", headers=headers,
                    json=patient_payload([catalog["cbc"].id], fullName=name))

    names = [p["fullName"] for p in client.get("/api/patients", headers=headers).json()]
    assert names == ["Ann Lee", "John Roe", "Jane Doe"]

    found = client.get("/api/patients", headers=headers, params={"q": "roe"}).json()
    assert [p["fullName"] for p in found] == ["John Roe"]

    page = client.get("/api/patients", headers=headers,
                      params={"limit": 1, "offset": 1}).json()
    assert [p["fullName"] for p in page] == ["John Roe"]


def test_patient_not_found(client, auth_headers):
    headers = auth_headers("cash1")
    r = client.get("/api/patients/12345", headers=headers)
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "not_found"


def test_masters_write_requires_master(client, auth_headers):
    cashier = auth_headers("cash1")
    r = client.post("/api/tests", headers=cashier,
                    json={"name": "TSH", "price": "350.00"})
    assert r.status_code == 403

    master = auth_headers("boss", role=RoleName.MASTER)
    created = client.post("/api/tests", headers=master,
                          json={"name": "TSH", "price": "350.00"})
    assert created.status_code == 201
    test_id = created.json()["id"]

    assert client.post("/api/tests", headers=master,
                       json={"name": "TSH", "price": "1"}).status_code == 409

    prm = client.post("/api/test-parameters", headers=master, json={
        "testId": test_id,
        "parameterName": "TSH",
        "unit": "mIU/L",
        "normalRange": "0.4-4.0",
    })
    assert prm.status_code == 201

    detail = client.get(f"/api/tests/{test_id}", headers=cashier).json()
    assert [p["normalRange"] for p in detail["parameters"]] == ["0.4-4.0"]

    doc = client.post("/api/doctors", headers=master, json={"name": "Dr. Iyer"})
    assert doc.status_code == 201
    assert doc.json()["doctorId"] == f"DOCNO-{doc.json()['id']:07d}"


def test_manual_status_endpoint(client, auth_headers, catalog):
    cashier = auth_headers("cash1")
    tech = auth_headers("tech1", role=RoleName.LAB_TECHNICIAN)
    patient = client.post("/api/patients", headers=cashier,
                          json=patient_payload([catalog["cbc"].id])).json()["patient"]
    pt_id = client.get(f"/api/patients/{patient['id']}/tests",
                       headers=tech).json()[0]["patientTestId"]

    r = client.patch(f"/api/patient-tests/{pt_id}/status", headers=tech,
                     json={"status": "completed"})
    assert r.status_code == 409

    r = client.patch(f"/api/patient-tests/{pt_id}/status", headers=tech,
                     json={"status": "billed"})
    assert r.status_code == 409

    client.post("/api/bills", headers=cashier, json={"patientId": patient["id"]})
    r = client.patch(f"/api/patient-tests/{pt_id}/status", headers=tech,
                     json={"status": "completed"})
    assert r.status_code == 409

    r = client.patch(f"/api/patient-tests/{pt_id}/status", headers=tech,
                     json={"status": "pending"})
    assert r.status_code == 200
    assert r.json()["status"] == "pending"

    r = client.patch(f"/api/patient-tests/{pt_id}/status", headers=tech,
                     json={"status": "in_progress"})
    assert r.status_code == 422

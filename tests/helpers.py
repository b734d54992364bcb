def patient_payload(test_ids, **overrides):
    data = {
        "fullName": "Jane Doe",
        "age": 34,
        "gender": "Female",
        "phoneNumber": "9876543210",
        "addressLine1": "12 Lake Road",
        "state": "Tamil Nadu",
        "pincode": "641001",
        "patientConsent": True,
        "testIds": list(test_ids),
    }
    data.update(overrides)
    return data

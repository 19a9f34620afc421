async def test_create_and_list(client):
    created = []
    for body in [
        {"name": "priority", "valueType": "int"},
        {"name": "owner", "description": "Who owns the file", "valueType": "string"},
        {"name": "approved", "valueType": "BOOL"},
        {"name": "starred"},
    ]:
        response = await client.post("/api/tag-templates", json=body)
        assert response.status_code == 201
        created.append(response.json()["uuid"])

    response = await client.get("/api/tag-templates")

    assert response.status_code == 200
    body = response.json()
    assert body["page"] == 0
    assert [(t["name"], t["valueType"]) for t in body["items"]] == [
        ("approved", "boolean"),
        ("owner", "string"),
        ("priority", "integer"),
        ("starred", None),
    ]
    assert {t["uuid"] for t in body["items"]} == set(created)
    owner = next(t for t in body["items"] if t["name"] == "owner")
    assert owner["description"] == "Who owns the file"
    assert owner["createdAt"]


async def test_page_past_end_is_empty(client):
    await client.post("/api/tag-templates", json={"name": "only"})

    response = await client.get("/api/tag-templates", params={"page": 1})

    assert response.json() == {"page": 1, "items": []}


async def test_unknown_value_type_is_rejected(client):
    response = await client.post("/api/tag-templates", json={"name": "x", "valueType": "float"})

    assert response.status_code == 422
    assert "valueType" in response.json()["error"]

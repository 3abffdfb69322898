from app.schemas.tenant import Role


def _create(client, headers, **overrides):
    payload = {"name": "Review sentiment", "type": "sentiment", **overrides}
    return client.post("/agent-factory", json=payload, headers=headers)


def test_create_agent_merges_default_config(client, auth_headers):
    response = _create(client, auth_headers(), config={"batch_size": 25, "team": "growth"})

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    agent = body["data"]
    assert agent["tenant_id"] == "tenant-a"
    assert agent["status"] == "inactive"
    assert agent["endpoint_url"] == "/api/sentiment-agent"
    assert agent["config"]["batch_size"] == 25
    assert agent["config"]["confidence_threshold"] == 0.7
    assert agent["config"]["model"] == "cardiffnlp/twitter-roberta-base-sentiment-latest"
    assert agent["config"]["extensions"] == {"team": "growth"}


def test_create_agent_rejects_bad_config(client, auth_headers):
    response = _create(client, auth_headers(), config={"batch_size": 0})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid agent config"


def test_invalid_body_uses_error_envelope(client, auth_headers):
    response = client.post("/agent-factory", json={"type": "unknown"}, headers=auth_headers())

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid request"
    assert body["details"]["errors"]


def test_list_agents_paginates_and_counts(client, auth_headers):
    headers = auth_headers()
    for i in range(3):
        _create(client, headers, name=f"sentiment-{i}")
    _create(client, headers, name="recs", type="recommendation")
    _create(client, auth_headers(tenant_id="tenant-b"), name="foreign")

    response = client.get("/agent-factory", params={"page": 2, "limit": 3}, headers=headers)

    assert response.status_code == 200
    body = response.json()
    assert [a["name"] for a in body["data"]] == ["recs"]
    assert body["pagination"] == {"page": 2, "limit": 3, "total": 4, "pages": 2}
    assert body["statistics"]["total"] == 4
    assert body["statistics"]["inactive"] == 4
    assert body["statistics"]["by_type"] == {"sentiment": 3, "recommendation": 1, "performance": 0}


def test_cross_tenant_access_is_denied(client, auth_headers):
    agent_id = _create(client, auth_headers(tenant_id="tenant-b")).json()["data"]["id"]

    assert client.get(f"/agent-factory/{agent_id}", headers=auth_headers()).status_code == 403
    assert client.get("/agent-factory/missing", headers=auth_headers()).status_code == 404


def test_update_merges_config_and_requires_admin(client, auth_headers):
    agent_id = _create(client, auth_headers(), config={"batch_size": 25}).json()["data"]["id"]
    patch = {"status": "active", "config": {"confidence_threshold": 0.9}}

    denied = client.put(f"/agent-factory/{agent_id}", json=patch, headers=auth_headers())
    assert denied.status_code == 403

    response = client.put(f"/agent-factory/{agent_id}", json=patch, headers=auth_headers(role=Role.ADMIN))
    assert response.status_code == 200
    agent = response.json()["data"]
    assert agent["status"] == "active"
    assert agent["config"]["batch_size"] == 25
    assert agent["config"]["confidence_threshold"] == 0.9


def test_delete_agent(client, auth_headers):
    admin = auth_headers(role=Role.ADMIN)
    agent_id = _create(client, admin).json()["data"]["id"]

    assert client.delete(f"/agent-factory/{agent_id}", headers=auth_headers()).status_code == 403
    assert client.delete(f"/agent-factory/{agent_id}", headers=admin).status_code == 200
    assert client.get(f"/agent-factory/{agent_id}", headers=admin).status_code == 404


def test_viewer_cannot_create(client, auth_headers):
    response = _create(client, auth_headers(role=Role.VIEWER))

    assert response.status_code == 403
    assert response.json()["details"] == {"role": "viewer", "action": "create"}


def test_missing_credentials(client):
    response = client.get("/agent-factory")

    assert response.status_code == 401
    assert response.json()["error"] == "Authorization header required"

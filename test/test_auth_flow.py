# test/test_auth_flow.py
from conftest import register_and_login, unique


def test_health_and_root_are_public(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["checks"]["database"]["status"] == "ok"

    r = client.get("/")
    assert r.status_code == 200
    assert r.headers["X-Content-Type-Options"] == "nosniff"


def test_register_login_and_create_school(client):
    r = client.post("/api/auth/register", json={
        "username": "t1", "email": "t1@example.com", "password": "secret123", "role": "coordinator"
    })
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["username"] == "t1"
    assert body["role"] == "coordinator"
    assert "password" not in body and "hashed_password" not in body

    r = client.post("/api/auth/login", json={"username": "t1", "password": "secret123"})
    assert r.status_code == 200, r.text
    login = r.json()
    assert login["token_type"] == "bearer"
    assert login["user"]["role"] == "coordinator"
    assert "session_id" in r.cookies
    headers = {"Authorization": f"Bearer {login['token']}"}

    r = client.post("/api/schools", json={"school_name": "Modern School", "location": "Delhi"}, headers=headers)
    assert r.status_code == 201, r.text
    school_id = r.json()["school_id"]

    # School listing is public
    r = client.get("/api/schools")
    assert r.status_code == 200
    assert any(s["school_id"] == school_id and s["school_name"] == "Modern School" for s in r.json())


def test_duplicate_registration_is_rejected(client):
    username = unique("dup")
    payload = {"username": username, "email": f"{username}@example.com", "password": "secret123"}
    assert client.post("/api/auth/register", json=payload).status_code == 201

    r = client.post("/api/auth/register", json=payload)
    assert r.status_code == 400
    assert r.json()["code"] == "DuplicateIdentity"

    # Same email under another username, case-insensitively
    payload2 = {"username": unique("dup"), "email": f"{username.upper()}@EXAMPLE.com", "password": "secret123"}
    r = client.post("/api/auth/register", json=payload2)
    assert r.status_code == 400


def test_padded_username_round_trips(client):
    username = unique("pad")
    body = {"username": f" {username} ", "email": f"{username}@example.com", "password": "secret123"}
    r = client.post("/api/auth/register", json=body)
    assert r.status_code == 201, r.text
    assert r.json()["username"] == username

    r = client.post("/api/auth/login", json={"username": body["username"], "password": "secret123"})
    assert r.status_code == 200, r.text
    assert r.json()["user"]["username"] == username


def test_blank_username_is_rejected(client, admin_headers):
    r = client.post("/api/auth/register", json={
        "username": "   ", "email": f"{unique('blank')}@example.com", "password": "secret123"
    })
    assert r.status_code == 400
    assert r.json()["code"] == "ValidationError"
    assert r.json()["fields"] == ["username"]

    r = client.post("/api/users", json={
        "username": "\t", "email": f"{unique('blank')}@example.com", "password": "secret123", "role": "examiner"
    }, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["fields"] == ["username"]

    r = client.post("/api/auth/login", json={"username": "  ", "password": "secret123"})
    assert r.status_code == 400


def test_default_registration_role_is_examiner(client):
    username = unique("plain")
    r = client.post("/api/auth/register", json={
        "username": username, "email": f"{username}@example.com", "password": "secret123"
    })
    assert r.status_code == 201
    assert r.json()["role"] == "examiner"


def test_registration_validation_errors(client):
    r = client.post("/api/auth/register", json={"username": unique("short"), "email": "s@example.com", "password": "abc"})
    assert r.status_code == 400
    assert r.json()["fields"] == ["password"]

    r = client.post("/api/auth/register", json={"username": unique("nomail"), "password": "secret123"})
    assert r.status_code == 400
    body = r.json()
    assert body["code"] == "ValidationError"
    assert "email" in body["fields"]


def test_bad_credentials(client):
    register_and_login(client, "examiner")
    r = client.post("/api/auth/login", json={"username": "nobody", "password": "secret123"})
    assert r.status_code == 401
    assert r.json()["error"] == "Invalid credentials"


def test_missing_and_invalid_tokens(client):
    r = client.get("/api/examiners")
    assert r.status_code == 401
    assert r.json()["code"] == "MissingCredential"

    r = client.get("/api/examiners", headers={"Authorization": "Bearer nonsense"})
    assert r.status_code == 401
    assert r.json()["error"] == "Invalid or expired token"


def test_expired_token_gets_generic_message(client):
    issuer = client.app.state.token_issuer
    token = issuer.issue({"sub": "x", "user_id": 1, "username": "x", "role": "admin"}, ttl_seconds=-5)
    r = client.get("/api/auth/verify", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json()["error"] == "Invalid or expired token"


def test_verify_me_and_logout(client):
    headers = register_and_login(client, "coordinator")

    r = client.get("/api/auth/verify", headers=headers)
    assert r.status_code == 200
    assert r.json()["valid"] is True
    assert r.json()["user"]["role"] == "coordinator"

    r = client.get("/api/auth/me", headers=headers)
    assert r.status_code == 200
    assert "hashed_password" not in r.json()

    r = client.post("/api/auth/logout", headers=headers)
    assert r.status_code == 200
    assert r.json()["success"] is True

    # Logout is advisory: the bearer token keeps working until it expires
    r = client.get("/api/auth/verify", headers=headers)
    assert r.status_code == 200


def test_examiner_cannot_write_reference_data(client):
    headers = register_and_login(client, "examiner")
    r = client.post("/api/schools", json={"school_name": "X", "location": "Y"}, headers=headers)
    assert r.status_code == 403
    assert r.json()["code"] == "AccessDenied"

    r = client.post("/api/subjects", json={"subject_name": "X", "subject_code": "X1"}, headers=headers)
    assert r.status_code == 403

    r = client.get("/api/dashboard", headers=headers)
    assert r.status_code == 403

    # Reads open to any authenticated role
    assert client.get("/api/examiners", headers=headers).status_code == 200


def test_user_administration(client, admin_headers, coordinator_headers):
    assert client.get("/api/users", headers=coordinator_headers).status_code == 403

    username = unique("managed")
    r = client.post("/api/users", json={
        "username": username, "email": f"{username}@example.com",
        "password": "secret123", "role": "coordinator"
    }, headers=admin_headers)
    assert r.status_code == 201, r.text
    user_id = r.json()["id"]

    r = client.patch(f"/api/users/{user_id}/status", json={"is_active": False}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["is_active"] is False

    # Deactivated users cannot log in
    r = client.post("/api/auth/login", json={"username": username, "password": "secret123"})
    assert r.status_code == 401

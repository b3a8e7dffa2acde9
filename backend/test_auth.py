from jose import jwt

from auth import create_token, verify_token
from config import JWT_ALGORITHM, JWT_SECRET


def test_token_round_trip_adds_expiry_and_jti():
    payload = verify_token(create_token({"user_id": 5, "role": "admin"}))
    assert payload["user_id"] == 5
    assert payload["role"] == "admin"
    assert "exp" in payload and "jti" in payload


def test_tampered_or_foreign_tokens_are_rejected():
    token = create_token({"user_id": 5})
    assert verify_token(token + "x") is None
    assert verify_token(jwt.encode({"user_id": 5}, "some-other-secret", algorithm=JWT_ALGORITHM)) is None
    assert verify_token("not-a-token") is None


def test_token_without_user_is_unauthorized(client, call_id):
    token = jwt.encode({"role": "admin"}, JWT_SECRET, algorithm=JWT_ALGORITHM)
    resp = client.get(f"/api/v1/startup-calls/{call_id}/budgets", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Token payload missing required claims"

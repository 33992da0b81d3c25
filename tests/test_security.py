from backend.app.core.security import get_password_hash, verify_password


def test_password_hashing_not_plain():
    plain = "password123"
    hashed = get_password_hash(plain)
    assert hashed and hashed != plain


def test_verify_password():
    hashed = get_password_hash("secret")
    assert verify_password("secret", hashed)
    assert not verify_password("wrong", hashed)


def test_verify_password_without_hash_is_false():
    assert not verify_password("anything", None)

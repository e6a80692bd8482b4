"""Unit tests for the pure helpers: recent-view ordering, patches, credentials."""
import pytest
from jose import JWTError

from app.schemas import ArticleUpdate
from app.security import create_access_token, decode_token, hash_password, verify_password
from app.services.article_service import MISSING, ArticlePatch, push_recent


# ---------------------------------------------------------------------------
# push_recent
# ---------------------------------------------------------------------------

def test_push_recent_prepends_new_id():
    assert push_recent([2, 1], 3, limit=10) == [3, 2, 1]


def test_push_recent_moves_existing_id_to_front():
    assert push_recent([3, 2, 1], 1, limit=10) == [1, 3, 2]


def test_push_recent_truncates_oldest():
    assert push_recent([3, 2, 1], 4, limit=3) == [4, 3, 2]


def test_push_recent_on_empty_list():
    assert push_recent([], 7, limit=1) == [7]


# ---------------------------------------------------------------------------
# ArticlePatch
# ---------------------------------------------------------------------------

def test_patch_from_update_keeps_only_sent_fields():
    patch = ArticlePatch.from_update(ArticleUpdate.model_validate({"title": "New"}))
    assert patch.title == "New"
    assert patch.content is MISSING
    assert patch.supplied() == {"title": "New"}


def test_patch_distinguishes_explicit_none_from_absent():
    patch = ArticlePatch.from_update(ArticleUpdate.model_validate({"content": None}))
    assert patch.supplied() == {"content": None}


def test_empty_patch_supplies_nothing():
    assert ArticlePatch().supplied() == {}
    assert not MISSING


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------

def test_password_hash_roundtrip():
    hashed = hash_password("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("secret124", hashed)


def test_access_token_claims():
    claims = decode_token(create_access_token(42))
    assert claims["sub"] == "42"
    assert claims["type"] == "access"
    assert "exp" in claims


def test_tampered_token_rejected():
    token = create_access_token(42)
    with pytest.raises(JWTError):
        decode_token(token[:-2] + ("A" if token[-2] != "A" else "B") + token[-1])

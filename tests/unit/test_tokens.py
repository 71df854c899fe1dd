"""
Unit tests for TokenCodec.

Tests verify:
- Round trip of claims before expiry
- Tamper detection on every segment
- Expiry enforcement regardless of signature validity
- Uniform InvalidToken for every failure
"""

import base64
import json
from datetime import datetime, timezone

import jwt
import pytest

from src.domain.exceptions import InvalidToken, ServerNotConfigured
from src.domain.tokens import TokenCodec, TokenConfig, b64url_decode, b64url_encode

SECRET = "token-test-secret"


def make_claims(clock, ttl: int = 600, **extra) -> dict:
    now = int(clock().timestamp())
    return {"sub": "user@example.com", "purpose": "confirm", "iat": now, "exp": now + ttl, **extra}


class TestTokenConfig:
    """Tests for signing configuration."""

    def test_empty_secret_rejected(self) -> None:
        """An empty secret means the server is not configured."""
        with pytest.raises(ServerNotConfigured):
            TokenConfig(secret="")


class TestSign:
    """Tests for token creation."""

    def test_token_has_three_segments(self, codec: TokenCodec, clock) -> None:
        """Token is three dot-separated base64url segments."""
        token = codec.sign(make_claims(clock))
        parts = token.split(".")
        assert len(parts) == 3
        assert all(part and "=" not in part for part in parts)

    def test_header_is_hs256(self, codec: TokenCodec, clock) -> None:
        """Header segment declares HS256."""
        token = codec.sign(make_claims(clock))
        header = json.loads(b64url_decode(token.split(".")[0]))
        assert header == {"alg": "HS256", "typ": "JWT"}

    def test_sign_is_deterministic(self, codec: TokenCodec, clock) -> None:
        """Same claims produce the same token."""
        claims = make_claims(clock)
        assert codec.sign(claims) == codec.sign(dict(reversed(list(claims.items()))))

    def test_sign_requires_exp(self, codec: TokenCodec) -> None:
        """Claims without a finite numeric exp are refused."""
        with pytest.raises(ValueError):
            codec.sign({"sub": "x", "purpose": "session"})
        with pytest.raises(ValueError):
            codec.sign({"sub": "x", "purpose": "session", "exp": "tomorrow"})
        with pytest.raises(ValueError):
            codec.sign({"sub": "x", "purpose": "session", "exp": float("nan")})
        with pytest.raises(ValueError):
            codec.sign({"sub": "x", "purpose": "session", "exp": float("inf")})

    def test_sign_requires_purpose(self, codec: TokenCodec, clock) -> None:
        """Claims without a purpose are refused."""
        claims = make_claims(clock)
        del claims["purpose"]
        with pytest.raises(ValueError):
            codec.sign(claims)


class TestVerify:
    """Tests for token verification."""

    def test_round_trip_returns_claims(self, codec: TokenCodec, clock) -> None:
        """verify(sign(claims)) == claims before expiry."""
        claims = make_claims(clock, email="user@example.com", role="user")
        assert codec.verify(codec.sign(claims)) == claims

    def test_round_trip_with_unicode_claims(self, codec: TokenCodec, clock) -> None:
        """Non-ASCII claim values survive the round trip."""
        claims = make_claims(clock, name="Zoë Ångström")
        assert codec.verify(codec.sign(claims)) == claims

    def test_expired_token_rejected(self, codec: TokenCodec, clock) -> None:
        """Token is invalid once the clock passes exp."""
        token = codec.sign(make_claims(clock, ttl=60))
        clock.advance(seconds=61)
        with pytest.raises(InvalidToken):
            codec.verify(token)

    def test_token_invalid_exactly_at_expiry(self, codec: TokenCodec, clock) -> None:
        """exp <= now is already invalid."""
        token = codec.sign(make_claims(clock, ttl=60))
        clock.advance(seconds=60)
        with pytest.raises(InvalidToken):
            codec.verify(token)

    def test_valid_just_before_expiry(self, codec: TokenCodec, clock) -> None:
        """Token is still valid one second before exp."""
        token = codec.sign(make_claims(clock, ttl=60))
        clock.advance(seconds=59)
        assert codec.verify(token)["sub"] == "user@example.com"

    def test_wrong_secret_rejected(self, codec: TokenCodec, clock) -> None:
        """A token signed under another secret is invalid."""
        other = TokenCodec(TokenConfig(secret="another-secret"), clock=clock)
        with pytest.raises(InvalidToken):
            codec.verify(other.sign(make_claims(clock)))

    @pytest.mark.parametrize(
        "token",
        [
            "",
            "abc",
            "a.b",
            "a.b.c.d",
            "..",
            "a..c",
            "a.b.c d",
            "a.b.c=",
            "a+b.c/d.e",
        ],
    )
    def test_malformed_tokens_rejected(self, codec: TokenCodec, token: str) -> None:
        """Wrong segment counts and non-base64url characters are invalid."""
        with pytest.raises(InvalidToken):
            codec.verify(token)

    def test_non_string_rejected(self, codec: TokenCodec) -> None:
        """Non-string input is invalid, not a crash."""
        with pytest.raises(InvalidToken):
            codec.verify(None)  # type: ignore[arg-type]

    def test_modified_payload_rejected(self, codec: TokenCodec, clock) -> None:
        """Changing the payload without re-signing is detected."""
        header, _, signature = codec.sign(make_claims(clock)).split(".")
        forged = b64url_encode(json.dumps(make_claims(clock, ttl=10**6)).encode())
        with pytest.raises(InvalidToken):
            codec.verify(f"{header}.{forged}.{signature}")

    def test_alg_none_rejected(self, codec: TokenCodec, clock) -> None:
        """A token claiming alg=none with an empty signature is invalid."""
        header = b64url_encode(json.dumps({"alg": "none", "typ": "JWT"}).encode())
        payload = b64url_encode(json.dumps(make_claims(clock)).encode())
        with pytest.raises(InvalidToken):
            codec.verify(f"{header}.{payload}.")

    def test_missing_exp_rejected(self, clock) -> None:
        """A correctly signed payload without exp is still invalid."""
        codec = TokenCodec(TokenConfig(secret=SECRET), clock=clock)
        token = jwt.encode({"sub": "x", "purpose": "session"}, SECRET, algorithm="HS256")
        with pytest.raises(InvalidToken):
            codec.verify(token)

    @pytest.mark.parametrize("exp", ["NaN", "Infinity", "tomorrow", True])
    def test_unusable_exp_rejected(self, clock, exp) -> None:
        """A correctly signed payload whose exp is not a finite number is invalid."""
        codec = TokenCodec(TokenConfig(secret=SECRET), clock=clock)
        value = float(exp) if exp in ("NaN", "Infinity") else exp
        token = jwt.encode({"sub": "x", "purpose": "session", "exp": value}, SECRET, algorithm="HS256")
        with pytest.raises(InvalidToken):
            codec.verify(token)

    def test_expiry_follows_injected_clock(self, codec: TokenCodec, clock) -> None:
        """Expiry is judged by the codec's clock, not the wall clock."""
        clock.now = datetime(2001, 1, 1, tzinfo=timezone.utc)
        token = codec.sign(make_claims(clock, ttl=60))
        assert codec.verify(token)["sub"] == "user@example.com"

        clock.advance(seconds=60)
        with pytest.raises(InvalidToken):
            codec.verify(token)

    def test_library_tokens_interoperate(self, clock) -> None:
        """Tokens from any HS256 signer with the same secret verify."""
        codec = TokenCodec(TokenConfig(secret=SECRET), clock=clock)
        claims = make_claims(clock)
        assert codec.verify(jwt.encode(claims, SECRET, algorithm="HS256")) == claims
        options = {"verify_exp": False, "verify_iat": False}
        assert jwt.decode(codec.sign(claims), SECRET, algorithms=["HS256"], options=options) == claims

    def test_failures_share_one_message(self, codec: TokenCodec, clock) -> None:
        """Malformed, tampered and expired tokens give the same message."""
        messages = set()
        token = codec.sign(make_claims(clock, ttl=5))
        tampered = token[:-1] + ("B" if token[-1] != "B" else "C")
        for candidate in ["nope", tampered]:
            with pytest.raises(InvalidToken) as exc_info:
                codec.verify(candidate)
            messages.add(str(exc_info.value))
        clock.advance(seconds=10)
        with pytest.raises(InvalidToken) as exc_info:
            codec.verify(token)
        messages.add(str(exc_info.value))
        assert messages == {"Invalid or expired token"}


class TestSignatureBitFlips:
    """Flipping any single bit of the signature invalidates the token."""

    def test_every_signature_bit_flip_rejected(self, codec: TokenCodec, clock) -> None:
        """Each of the 256 signature bits is checked."""
        header, payload, signature = codec.sign(make_claims(clock)).split(".")
        raw = bytearray(b64url_decode(signature))
        assert len(raw) == 32

        for index in range(len(raw)):
            for bit in range(8):
                flipped = bytearray(raw)
                flipped[index] ^= 1 << bit
                candidate = f"{header}.{payload}.{b64url_encode(bytes(flipped))}"
                with pytest.raises(InvalidToken):
                    codec.verify(candidate)

    def test_encoded_padding_bits_checked(self, codec: TokenCodec, clock) -> None:
        """Changing only the unused low bits of the last character is detected."""
        header, payload, signature = codec.sign(make_claims(clock)).split(".")
        alphabet = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"
        last = alphabet.index(signature[-1])
        # 32 bytes -> 43 chars; the final char carries 2 unused bits
        sibling = alphabet[last ^ 1]
        candidate = f"{header}.{payload}.{signature[:-1]}{sibling}"
        assert base64.urlsafe_b64decode(signature + "=") == base64.urlsafe_b64decode(
            candidate.split(".")[2] + "="
        )
        with pytest.raises(InvalidToken):
            codec.verify(candidate)

    def test_truncated_signature_rejected(self, codec: TokenCodec, clock) -> None:
        """Shorter signatures fail the length gate."""
        token = codec.sign(make_claims(clock))
        with pytest.raises(InvalidToken):
            codec.verify(token[:-1])

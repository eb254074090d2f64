"""Tests for the file-based credential cache."""

import json
import stat
from datetime import timedelta

import pytest
from conftest import make_credentials

from cloudops.auth.cache import CredentialCache, cache_key, default_cache_dir


class TestCacheKey:
    """Test cache key derivation."""

    def test_known_values(self):
        """Keys match ``echo "<role>:<mfa>:<external-id>" | sha256sum | cut -c1-16``."""
        assert cache_key("arn:aws:iam::123456789012:role/Admin") == "96b7eeb893a0d380"
        assert (
            cache_key(
                "arn:aws:iam::123456789012:role/Admin",
                "arn:aws:iam::123456789012:mfa/alice",
                "ext-123",
            )
            == "a7071307bf94fe6c"
        )

    def test_none_and_explicit_sentinel_agree(self, sample_role_arn):
        assert cache_key(sample_role_arn, None, None) == cache_key(sample_role_arn, "none", "none")

    def test_deterministic(self, sample_role_arn, sample_mfa_serial):
        assert cache_key(sample_role_arn, sample_mfa_serial, "x") == cache_key(sample_role_arn, sample_mfa_serial, "x")

    def test_mfa_serial_changes_key(self, sample_role_arn, sample_mfa_serial):
        assert cache_key(sample_role_arn) != cache_key(sample_role_arn, sample_mfa_serial)

    def test_external_id_changes_key(self, sample_role_arn):
        assert cache_key(sample_role_arn, external_id="a") != cache_key(sample_role_arn, external_id="b")

    def test_role_changes_key(self):
        assert cache_key("arn:aws:iam::123456789012:role/A") != cache_key("arn:aws:iam::123456789012:role/B")

    def test_key_is_16_hex_chars(self, sample_role_arn):
        key = cache_key(sample_role_arn)
        assert len(key) == 16
        int(key, 16)


class TestCredentialCache:
    """Test reading, writing and freshness of cache entries."""

    @pytest.fixture
    def cache(self, tmp_path):
        return CredentialCache(tmp_path / "cache")

    def test_default_cache_dir(self):
        assert CredentialCache().cache_dir == default_cache_dir()
        assert default_cache_dir().parts[-3:] == (".aws", "cli", "cache")

    def test_expands_user_dir(self):
        cache = CredentialCache("~/creds")
        assert "~" not in str(cache.cache_dir)

    def test_file_name(self, cache):
        assert cache.path_for("abc").name == "assume-role-abc.json"

    def test_read_missing_entry(self, cache):
        assert cache.read("missing") is None

    def test_round_trip(self, cache):
        credentials = make_credentials()

        assert cache.write("key", credentials) is True

        assert cache.read("key") == credentials

    def test_repeated_reads_are_identical(self, cache):
        cache.write("key", make_credentials())

        assert cache.read("key") == cache.read("key")

    def test_document_layout(self, cache):
        credentials = make_credentials()
        assumed_role_user = {"AssumedRoleId": "AROA:session", "Arn": "arn:aws:sts::123456789012:assumed-role/A/s"}

        cache.write("key", credentials, assumed_role_user)

        document = json.loads(cache.path_for("key").read_text())
        assert document["Credentials"] == {
            "AccessKeyId": credentials.access_key_id,
            "SecretAccessKey": credentials.secret_access_key,
            "SessionToken": credentials.session_token,
            "Expiration": credentials.expiration.isoformat(),
        }
        assert document["AssumedRoleUser"] == assumed_role_user

    def test_permissions(self, cache):
        cache.write("key", make_credentials())

        assert stat.S_IMODE(cache.cache_dir.stat().st_mode) == 0o700
        assert stat.S_IMODE(cache.path_for("key").stat().st_mode) == 0o600

    def test_overwrites_existing_entry(self, cache):
        cache.write("key", make_credentials(suffix="old"))
        fresh = make_credentials(suffix="new")

        cache.write("key", fresh)

        assert cache.read("key") == fresh

    @pytest.mark.parametrize(
        "content",
        [
            "",
            "{not json",
            '{"Credentials": {"AccessKeyId": "AKIA"',
            "[]",
            '{"Credentials": null}',
            '{"Credentials": {"AccessKeyId": "AKIA", "SecretAccessKey": "s", "SessionToken": "t"}}',
            '{"Credentials": {"AccessKeyId": "AKIA", "SecretAccessKey": "s", "SessionToken": "t", '
            '"Expiration": "tomorrow"}}',
            '{"Credentials": {"AccessKeyId": null, "SecretAccessKey": "s", "SessionToken": "t", '
            '"Expiration": "2999-01-01T00:00:00Z"}}',
            '{"Credentials": {"AccessKeyId": "AKIA", "SecretAccessKey": 42, "SessionToken": "t", '
            '"Expiration": "2999-01-01T00:00:00Z"}}',
            '{"Credentials": {"AccessKeyId": "AKIA", "SecretAccessKey": "s", "SessionToken": "", '
            '"Expiration": "2999-01-01T00:00:00Z"}}',
        ],
    )
    def test_unusable_entry_is_a_miss(self, cache, content):
        cache.cache_dir.mkdir(parents=True)
        cache.path_for("key").write_text(content)

        assert cache.read("key") is None
        assert cache.get_fresh("key") is None

    def test_get_fresh_returns_valid_entry(self, cache):
        credentials = make_credentials(expires_in=timedelta(seconds=1000))
        cache.write("key", credentials)

        assert cache.get_fresh("key") == credentials

    def test_get_fresh_rejects_entry_inside_margin(self, cache):
        cache.write("key", make_credentials(expires_in=timedelta(seconds=100)))

        assert cache.read("key") is not None
        assert cache.get_fresh("key") is None

    def test_get_fresh_rejects_expired_entry(self, cache):
        cache.write("key", make_credentials(expires_in=timedelta(hours=-1)))

        assert cache.get_fresh("key") is None

    def test_write_failure_is_not_fatal(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file in the way")
        cache = CredentialCache(blocker / "cache")

        assert cache.write("key", make_credentials()) is False
        assert cache.read("key") is None

    def test_expiration_text_is_preserved(self, cache):
        cache.cache_dir.mkdir(parents=True)
        cache.path_for("key").write_text(
            json.dumps(
                {
                    "Credentials": {
                        "AccessKeyId": "AKIA",
                        "SecretAccessKey": "s",
                        "SessionToken": "t",
                        "Expiration": "2999-01-01T08:20:49Z",
                    }
                }
            )
        )

        credentials = cache.get_fresh("key")

        assert credentials.expiration_iso() == "2999-01-01T08:20:49Z"
        assert credentials.to_sts_credentials()["Expiration"] == "2999-01-01T08:20:49Z"

"""
Unit tests for session management.

Tests JSONSession, MemorySession, SessionData and the credentials file.
"""
import json
import os
from datetime import datetime, timedelta

import pytest

from clima.core.session import (
    Credentials,
    JSONSession,
    MemorySession,
    SessionData,
    SessionState,
    SessionStorage,
    UserInfo,
    load_credentials,
    resolve_credentials,
)


class TestSessionData:
    """Tests for SessionData model."""

    def test_to_dict_uses_login_record_layout(self, session_data):
        """The record keeps the site's camelCase keys."""
        result = session_data.to_dict()

        assert result['token'] == {
            'expiresIn': 3600,
            'accessToken': 'access-token-0123456789abcdef',
            'refreshToken': 'refresh-token-0123456789abcdef',
        }
        assert result['user']['userId'] == 42
        assert result['user']['firstName'] == 'Rosa'
        assert 'createdAt' in result
        assert 'updatedAt' in result

    def test_from_dict_accepts_raw_login_answer(self, login_response):
        """A login answer without timestamps is a valid record."""
        data = SessionData.from_dict(login_response)

        assert data.access_token == 'access-token-0123456789abcdef'
        assert data.refresh_token == 'refresh-token-0123456789abcdef'
        assert data.expires_in == 3600
        assert data.user.membership_code == 'M-0042'
        assert data.state is SessionState.FRESH

    def test_json_roundtrip(self, session_data):
        restored = SessionData.from_json(session_data.to_json())

        assert restored == session_data

    def test_from_dict_rejects_missing_token(self):
        with pytest.raises(KeyError):
            SessionData.from_dict({'user': {}})

    def test_is_usable(self, session_data):
        assert session_data.is_usable()
        assert not SessionData(access_token='', refresh_token='r').is_usable()

    def test_expiry_hint(self):
        issued = datetime(2026, 10, 19, 8, 0, 0)
        data = SessionData(access_token='a', refresh_token='r', expires_in=60, created_at=issued)

        assert data.expires_at == issued + timedelta(seconds=60)
        assert not data.is_expired(now=issued + timedelta(seconds=59))
        assert data.is_expired(now=issued + timedelta(seconds=60))

    def test_no_lifetime_never_expires(self):
        data = SessionData(access_token='a', refresh_token='r', created_at=datetime(2000, 1, 1))

        assert data.expires_at is None
        assert not data.is_expired()

    def test_state_transitions(self, session_data):
        session_data.mark_verified()
        assert session_data.state is SessionState.VERIFIED

        session_data.mark_invalid()
        assert session_data.state is SessionState.INVALID

    def test_update_timestamp(self, session_data):
        old = session_data.updated_at = datetime(2000, 1, 1)
        session_data.update_timestamp()

        assert session_data.updated_at > old


class TestCredentials:
    """Tests for Credentials."""

    def test_password_not_in_repr(self):
        credentials = Credentials(email='reader@example.com', password='s3cret-pass')

        assert 's3cret-pass' not in repr(credentials)
        assert 'reader@example.com' in repr(credentials)

    def test_payload(self):
        credentials = Credentials(email='reader@example.com', password='s3cret-pass')

        assert credentials.to_payload() == {'email': 'reader@example.com', 'password': 's3cret-pass'}

    def test_is_complete(self):
        assert Credentials('a@b.it', 'x').is_complete()
        assert not Credentials('a@b.it', '').is_complete()

    def test_user_display_name(self):
        assert UserInfo(first_name='Rosa', last_name='Rossi').display_name == 'Rosa Rossi'
        assert UserInfo(email='reader@example.com').display_name == 'reader@example.com'


class TestMemorySession:
    """Tests for MemorySession."""

    def test_implements_protocol(self):
        assert isinstance(MemorySession(), SessionStorage)

    def test_save_and_load(self, session_data):
        storage = MemorySession()
        storage.save(session_data)

        assert storage.exists()
        assert storage.load() is session_data

    def test_delete(self, session_data):
        storage = MemorySession(session_data)
        storage.delete()

        assert not storage.exists()
        assert storage.load() is None


class TestJSONSession:
    """Tests for JSONSession."""

    def test_implements_protocol(self, tmp_path):
        assert isinstance(JSONSession(tmp_path / 'login.json'), SessionStorage)

    def test_default_name(self, tmp_path):
        storage = JSONSession(base_path=tmp_path)

        assert storage.path == tmp_path / 'login.json'

    def test_load_missing_file(self, tmp_path):
        assert JSONSession(tmp_path / 'login.json').load() is None

    def test_save_and_reload(self, tmp_path, session_data):
        """A reloaded record yields the same session."""
        path = tmp_path / 'login.json'
        JSONSession(path).save(session_data)

        restored = JSONSession(path).load()

        assert restored == session_data
        assert restored.state is SessionState.FRESH

    def test_saved_file_is_login_record(self, tmp_path, session_data):
        path = tmp_path / 'login.json'
        JSONSession(path).save(session_data)

        record = json.loads(path.read_text(encoding='utf-8'))

        assert record['token']['accessToken'] == session_data.access_token
        assert record['user']['email'] == 'reader@example.com'

    def test_save_leaves_no_temporary_files(self, tmp_path, session_data):
        storage = JSONSession(tmp_path / 'login.json')
        storage.save(session_data)
        storage.save(session_data)

        assert os.listdir(tmp_path) == ['login.json']

    def test_failed_save_keeps_previous_record(self, tmp_path, session_data, monkeypatch):
        """A crash while writing never corrupts the stored record."""
        path = tmp_path / 'login.json'
        storage = JSONSession(path)
        storage.save(session_data)
        before = path.read_text(encoding='utf-8')

        def broken_replace(src, dst):
            raise OSError('disk full')

        monkeypatch.setattr(os, 'replace', broken_replace)
        with pytest.raises(OSError):
            storage.save(SessionData(access_token='new', refresh_token='new'))

        assert path.read_text(encoding='utf-8') == before
        assert os.listdir(tmp_path) == ['login.json']

    @pytest.mark.parametrize('content', ['', 'not json', '[]', '{"user": {}}', '{"token": {"accessToken": "a"}}'])
    def test_corrupt_record_reads_as_absent(self, tmp_path, content):
        path = tmp_path / 'login.json'
        path.write_text(content, encoding='utf-8')

        assert JSONSession(path).load() is None

    def test_delete(self, tmp_path, session_data):
        storage = JSONSession(tmp_path / 'login.json')
        storage.save(session_data)
        storage.delete()

        assert not storage.exists()

    def test_context_manager(self, tmp_path):
        with JSONSession(tmp_path / 'login.json') as storage:
            assert not storage.exists()


class TestCredentialsFile:
    """Tests for the bootstrap credentials file."""

    def test_load(self, tmp_path):
        path = tmp_path / 'credentials.json'
        path.write_text(json.dumps({'email': 'reader@example.com', 'password': 'pw'}), encoding='utf-8')

        assert load_credentials(path) == Credentials('reader@example.com', 'pw')

    def test_missing_file(self, tmp_path):
        assert load_credentials(tmp_path / 'credentials.json') is None

    @pytest.mark.parametrize('content', ['{', '{"email": "a@b.it"}', '{"email": "", "password": "pw"}'])
    def test_unusable_file(self, tmp_path, content):
        path = tmp_path / 'credentials.json'
        path.write_text(content, encoding='utf-8')

        assert load_credentials(path) is None

    def test_explicit_values_win(self, tmp_path):
        path = tmp_path / 'credentials.json'
        path.write_text(json.dumps({'email': 'file@example.com', 'password': 'pw'}), encoding='utf-8')

        credentials = resolve_credentials('cli@example.com', 'other', path)

        assert credentials.email == 'cli@example.com'

    def test_falls_back_to_file(self, tmp_path):
        path = tmp_path / 'credentials.json'
        path.write_text(json.dumps({'email': 'file@example.com', 'password': 'pw'}), encoding='utf-8')

        assert resolve_credentials('cli@example.com', None, path).email == 'file@example.com'

from sqlalchemy import text

from fluentnow.db import init_db, make_engine, make_session_factory
from fluentnow.models import StoredSetting
from fluentnow.schemas import Preferences
from fluentnow.store import PREFERENCES_KEY, PreferenceStore


def _store(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'store.db'}")
    init_db(engine)
    factory = make_session_factory(engine)
    return PreferenceStore(factory), factory


class TestPreferenceStore:
    def test_defaults_when_empty(self, tmp_path):
        store, _ = _store(tmp_path)
        prefs = store.load_preferences()
        assert prefs == Preferences()
        assert prefs.source_language == "Spanish"
        assert prefs.difficulty_level == "A1"
        assert store.load_credential() is None

    def test_preferences_saved_with_camel_case_keys(self, tmp_path):
        store, factory = _store(tmp_path)
        store.save_preferences(Preferences(source_language="French", target_language="English", difficulty_level="B1", theme="travel"))
        with factory() as db:
            raw = db.get(StoredSetting, PREFERENCES_KEY).value
        assert '"sourceLanguage":"French"' in raw.replace(" ", "")
        assert store.load_preferences().theme == "travel"

    def test_unparsable_preferences_fall_back(self, tmp_path):
        store, factory = _store(tmp_path)
        with factory() as db:
            db.add(StoredSetting(key=PREFERENCES_KEY, value="{not json"))
            db.commit()
        assert store.load_preferences() == Preferences()

    def test_credential_roundtrip_and_clear(self, tmp_path):
        store, _ = _store(tmp_path)
        store.save_credential("  abc  ")
        assert store.load_credential() == "abc"
        store.save_credential("def")
        assert store.load_credential() == "def"
        store.clear_credential()
        assert store.load_credential() is None

    def test_missing_table_is_silent(self, tmp_path):
        store, factory = _store(tmp_path)
        with factory() as db:
            db.execute(text("DROP TABLE stored_settings"))
            db.commit()
        assert store.load_credential() is None
        assert store.load_preferences() == Preferences()

"""
Tests for PreferencesService

Tests the thread-safe preferences persistence service
"""

import json
import threading

from boardforge.services.preferences import PreferencesService


class TestPreferencesBasic:
    """Basic preferences operations"""

    def test_load_existing_preferences(self, temp_preferences):
        """Test loading preferences from existing file"""
        prefs = PreferencesService(config_path=str(temp_preferences))

        assert prefs.get_build_config() == {"tool": "cargo", "stop_on_failure": True}
        assert prefs.get_boards_directory() == "/opt/boards"
        assert prefs.get_recent_projects() == ["/home/user/blinky"]

    def test_missing_sections_take_defaults(self, temp_preferences):
        """Sections absent from the file are filled from defaults"""
        prefs = PreferencesService(config_path=str(temp_preferences))
        assert prefs.get_log_level() == "INFO"

    def test_save_build_config(self, temp_preferences):
        """Test saving build configuration"""
        prefs = PreferencesService(config_path=str(temp_preferences))

        assert prefs.set_build_config(tool="cross") is True

        config = prefs.get_build_config()
        assert config["tool"] == "cross"
        assert config["stop_on_failure"] is True

    def test_log_level_normalized(self, temp_preferences):
        prefs = PreferencesService(config_path=str(temp_preferences))
        prefs.set_log_level("debug")
        assert prefs.get_log_level() == "DEBUG"


class TestPreferencesPersistence:
    """Test persistence across instances"""

    def test_persistence_across_instances(self, temp_preferences):
        """Test that changes persist when reloading"""
        prefs1 = PreferencesService(config_path=str(temp_preferences))
        prefs1.set_boards_directory("/srv/boards")

        prefs2 = PreferencesService(config_path=str(temp_preferences))
        assert prefs2.get_boards_directory() == "/srv/boards"

    def test_file_content_matches(self, temp_preferences):
        """Test that file content matches what's saved"""
        prefs = PreferencesService(config_path=str(temp_preferences))
        prefs.set_build_config(stop_on_failure=False)

        with open(temp_preferences) as f:
            data = json.load(f)
        assert data["build"]["stop_on_failure"] is False

    def test_first_run_creates_file(self, tmp_path):
        """Defaults are written on first run, creating parent directories"""
        config_path = tmp_path / "nested" / "dir" / "preferences.json"

        prefs = PreferencesService(config_path=str(config_path))

        assert config_path.is_file()
        assert prefs.get_build_config() == {"tool": "cargo", "stop_on_failure": False}
        assert prefs.get_boards_directory() == ""

    def test_corrupt_file_falls_back_to_defaults(self, tmp_path):
        config_path = tmp_path / "preferences.json"
        config_path.write_text("{ not json")

        prefs = PreferencesService(config_path=str(config_path))
        assert prefs.get_recent_projects() == []

    def test_non_mapping_file_ignored(self, tmp_path):
        config_path = tmp_path / "preferences.json"
        config_path.write_text("[1, 2, 3]")

        prefs = PreferencesService(config_path=str(config_path))
        assert prefs.get_build_config()["tool"] == "cargo"

    def test_environment_override(self, tmp_path, monkeypatch):
        config_path = tmp_path / "from-env.json"
        monkeypatch.setenv(PreferencesService.PREFERENCES_ENV, str(config_path))

        prefs = PreferencesService()

        assert prefs.config_path == str(config_path)
        assert config_path.is_file()

    def test_reset_to_defaults(self, temp_preferences):
        prefs = PreferencesService(config_path=str(temp_preferences))

        assert prefs.reset_to_defaults() is True
        assert prefs.get_boards_directory() == ""
        assert prefs.get_recent_projects() == []


class TestRecentProjects:
    def test_most_recent_first_without_duplicates(self, temp_preferences):
        prefs = PreferencesService(config_path=str(temp_preferences))

        prefs.add_recent_project("/home/user/display")
        prefs.add_recent_project("/home/user/blinky")

        assert prefs.get_recent_projects() == ["/home/user/blinky", "/home/user/display"]

    def test_list_is_capped(self, tmp_path):
        prefs = PreferencesService(config_path=str(tmp_path / "preferences.json"))

        for i in range(PreferencesService.MAX_RECENT_PROJECTS + 5):
            prefs.add_recent_project(f"/projects/{i}")

        recent = prefs.get_recent_projects()
        assert len(recent) == PreferencesService.MAX_RECENT_PROJECTS
        assert recent[0] == f"/projects/{PreferencesService.MAX_RECENT_PROJECTS + 4}"

    def test_clear(self, temp_preferences):
        prefs = PreferencesService(config_path=str(temp_preferences))
        prefs.clear_recent_projects()
        assert prefs.get_recent_projects() == []

    def test_returned_list_is_a_copy(self, temp_preferences):
        prefs = PreferencesService(config_path=str(temp_preferences))
        prefs.get_recent_projects().append("/tmp/x")
        assert prefs.get_all_preferences()["projects"]["recent"] == ["/home/user/blinky"]


class TestPreferencesConcurrency:
    """Concurrent writers must not corrupt the file"""

    def test_concurrent_writes(self, tmp_path):
        config_path = tmp_path / "preferences.json"
        prefs = PreferencesService(config_path=str(config_path))
        errors = []

        def writer(n):
            try:
                for i in range(20):
                    prefs.add_recent_project(f"/projects/{n}-{i}")
            except Exception as e:  # pragma: no cover
                errors.append(e)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        with open(config_path) as f:
            data = json.load(f)
        assert len(data["projects"]["recent"]) == PreferencesService.MAX_RECENT_PROJECTS

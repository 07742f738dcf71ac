"""
Tests for environment listing and validation.
"""

from bruno_mcp.services import EnvironmentResolver
from bruno_mcp.services.environments import is_sensitive_key

from conftest import make_collection, write_file


class TestListEnvironments:
    """Tests for EnvironmentResolver.list_environments."""

    def test_lists_sorted_with_variables(self, tmp_path):
        """Environments are sorted by name and carry their variables."""
        root = make_collection(
            tmp_path / "c",
            environments={
                "prod": "vars {\n  baseUrl: https://api.example.com\n}\n",
                "dev": "vars {\n  baseUrl: http://localhost\n}\n",
            },
        )
        write_file(root / "environments" / "README.md", "ignored")

        environments = EnvironmentResolver().list_environments(root)

        assert [e.name for e in environments] == ["dev", "prod"]
        assert environments[0].variables == {"baseUrl": "http://localhost"}
        assert environments[1].path == str(root / "environments" / "prod.bru")

    def test_missing_directory(self, tmp_path):
        """No environments directory means no environments."""
        root = make_collection(tmp_path / "c")

        assert EnvironmentResolver().list_environments(root) == []

    def test_unreadable_file_listed_without_variables(self, tmp_path):
        """A file that cannot be decoded still appears, without variables."""
        root = make_collection(tmp_path / "c")
        env_dir = root / "environments"
        env_dir.mkdir()
        (env_dir / "broken.bru").write_bytes(b"\xff\xfe\xfa vars")

        environments = EnvironmentResolver().list_environments(root)

        assert len(environments) == 1
        assert environments[0].name == "broken"
        assert environments[0].variables is None
        assert "variables" not in environments[0].to_dict()


class TestValidateEnvironment:
    """Tests for EnvironmentResolver.validate_environment."""

    def test_missing_environment(self, tmp_path):
        """A missing file is the only reported problem."""
        root = make_collection(tmp_path / "c")
        expected = root / "environments" / "staging.bru"

        result = EnvironmentResolver().validate_environment(root, "staging")

        assert result.valid is False
        assert result.exists is False
        assert result.errors == [f"Environment file not found: {expected}"]
        assert result.warnings == []

    def test_references_are_not_flagged(self, tmp_path):
        """Sensitive names holding {{var}} or $VAR references are fine."""
        root = make_collection(
            tmp_path / "c",
            environments={"dev": "vars {\n  API_KEY: {{secret}}\n  password: $DB_PASSWORD\n}\n"},
        )

        result = EnvironmentResolver().validate_environment(root, "dev")

        assert result.valid is True
        assert result.exists is True
        assert result.warnings == []
        assert result.variables == {"API_KEY": "{{secret}}", "password": "$DB_PASSWORD"}

    def test_hardcoded_secret_warns(self, tmp_path):
        """A literal value in a sensitive variable is a warning, not an error."""
        root = make_collection(
            tmp_path / "c",
            environments={"prod": "vars {\n  API_KEY: sk_live_123\n  host: example.com\n}\n"},
        )

        result = EnvironmentResolver().validate_environment(root, "prod")

        assert result.valid is True
        assert result.errors == []
        assert result.warnings == ['Variable "API_KEY" may contain hardcoded sensitive data']

    def test_missing_vars_block(self, tmp_path):
        """A file without vars gets both structural warnings."""
        root = make_collection(tmp_path / "c", environments={"empty": "meta {\n  name: empty\n}\n"})

        result = EnvironmentResolver().validate_environment(root, "empty")

        assert result.valid is True
        assert result.warnings == [
            'Environment file does not contain a "vars {}" block',
            "No variables defined in environment",
        ]

    def test_idempotent(self, tmp_path):
        """Validating twice gives the same report."""
        root = make_collection(
            tmp_path / "c",
            environments={"prod": "vars {\n  token: abc\n}\n"},
        )
        resolver = EnvironmentResolver()

        assert resolver.validate_environment(root, "prod") == resolver.validate_environment(root, "prod")


class TestIsSensitiveKey:
    """Tests for is_sensitive_key."""

    def test_markers(self):
        """Matching is case-insensitive and by substring."""
        assert is_sensitive_key("DB_PASSWORD")
        assert is_sensitive_key("clientSecret")
        assert is_sensitive_key("authToken")
        assert is_sensitive_key("API_KEY")
        assert not is_sensitive_key("baseUrl")

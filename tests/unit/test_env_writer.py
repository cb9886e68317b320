"""Unit tests for env_writer module."""

from unittest.mock import patch

import pytest

from dotenvify.env_format import OutputPolicy
from dotenvify.env_writer import (
    BackupFailedError,
    SourceNotFoundError,
    WriteFailedError,
    backup_file,
    merge_preserved,
    next_backup_path,
    read_env_file,
    read_existing_variables,
    resolve_output_path,
    write_variables,
)


class TestReadEnvFile:
    """Tests for reading source files."""

    def test_reads_and_parses(self, env_file):
        source = env_file("export API_KEY=abc\nDEBUG true\n")

        result = read_env_file(source)

        assert result.variables == {"API_KEY": "abc", "DEBUG": "true"}

    def test_missing_source_raises(self, tmp_path):
        with pytest.raises(SourceNotFoundError, match="does not exist"):
            read_env_file(tmp_path / "missing.txt")

    def test_directory_is_not_a_source(self, tmp_path):
        with pytest.raises(SourceNotFoundError):
            read_env_file(tmp_path)


class TestReadExistingVariables:
    """Tests for reading the current destination."""

    def test_missing_file_is_empty(self, tmp_path):
        assert read_existing_variables(tmp_path / "nonexistent.env") == {}

    def test_ignores_dangling_keys(self, env_file):
        path = env_file("A=1\nDANGLING\n")

        assert read_existing_variables(path) == {"A": "1"}


class TestMergePreserved:
    """Tests for keeping existing values of preserved names."""

    def test_preserve_single_variable(self, env_file):
        existing = env_file('DATABASE_URL="keep-this"\nAPI_KEY=old-key')
        variables = {"DATABASE_URL": "new-url", "API_KEY": "new-key"}

        merged, preserved = merge_preserved(variables, existing, frozenset({"DATABASE_URL"}))

        assert merged == {"DATABASE_URL": "keep-this", "API_KEY": "new-key"}
        assert preserved == ["DATABASE_URL"]

    def test_preserve_name_missing_from_existing_file(self, env_file):
        existing = env_file("API_KEY=old-key")
        variables = {"DATABASE_URL": "new-url", "API_KEY": "new-key"}

        merged, preserved = merge_preserved(
            variables, existing, frozenset({"DATABASE_URL", "API_KEY"})
        )

        assert merged == {"DATABASE_URL": "new-url", "API_KEY": "old-key"}
        assert preserved == ["API_KEY"]

    def test_preserved_name_absent_from_new_values_is_added(self, env_file):
        existing = env_file("LOCAL_ONLY=mine")

        merged, _ = merge_preserved({"A": "1"}, existing, frozenset({"LOCAL_ONLY"}))

        assert merged == {"A": "1", "LOCAL_ONLY": "mine"}

    def test_no_existing_file(self, tmp_path):
        variables = {"DATABASE_URL": "new-url"}

        merged, preserved = merge_preserved(
            variables, tmp_path / "out.env", frozenset({"DATABASE_URL"})
        )

        assert merged == variables
        assert preserved == []

    def test_does_not_mutate_input(self, env_file):
        existing = env_file("A=old")
        variables = {"A": "new"}

        merge_preserved(variables, existing, frozenset({"A"}))

        assert variables == {"A": "new"}


class TestBackupFile:
    """Tests for numbered backups."""

    def test_numbered_backups(self, tmp_path):
        target = tmp_path / "test.env"
        target.write_bytes(b"TEST=value")

        first = backup_file(target)
        target.write_bytes(b"TEST=changed")
        second = backup_file(target)

        assert first == tmp_path / "test.env.backup.1"
        assert second == tmp_path / "test.env.backup.2"
        assert first.read_bytes() == b"TEST=value"
        assert second.read_bytes() == b"TEST=changed"

    def test_fills_first_free_slot(self, tmp_path):
        target = tmp_path / "test.env"
        target.write_text("X=1")
        (tmp_path / "test.env.backup.1").write_text("old")

        assert next_backup_path(target) == tmp_path / "test.env.backup.2"

    def test_nonexistent_file_is_not_an_error(self, tmp_path):
        assert backup_file(tmp_path / "missing.env") is None

    def test_copy_failure_raises(self, tmp_path):
        target = tmp_path / "test.env"
        target.write_text("X=1")

        with patch("dotenvify.env_writer.shutil.copyfile", side_effect=OSError("disk full")):
            with pytest.raises(BackupFailedError, match="disk full"):
                backup_file(target)


class TestResolveOutputPath:
    """Tests for redirecting degraded output away from the source."""

    def test_redirects_when_overwriting_source_with_errors(self, tmp_path):
        source = tmp_path / "vars.txt"

        assert resolve_output_path(source, source, has_errors=True) == tmp_path / "vars.txt.out"

    def test_keeps_output_without_errors(self, tmp_path):
        source = tmp_path / "vars.txt"

        assert resolve_output_path(source, source, has_errors=False) == source

    def test_keeps_distinct_output(self, tmp_path):
        source = tmp_path / "vars.txt"
        output = tmp_path / ".env"

        assert resolve_output_path(source, output, has_errors=True) == output


class TestWriteVariables:
    """Tests for the full write step."""

    def test_basic_write(self, tmp_path):
        output = tmp_path / "output.env"
        variables = {"API_KEY": "test123", "SECRET": "value with spaces"}

        result = write_variables(variables, output)

        assert output.read_text() == 'API_KEY=test123\nSECRET="value with spaces"\n'
        assert result.path == output
        assert result.variable_count == 2
        assert result.backup_path is None

    def test_backup_before_overwrite(self, tmp_path):
        output = tmp_path / "output.env"

        write_variables({"A": "1"}, output)
        write_variables({"A": "2"}, output)
        result = write_variables({"A": "3"}, output)

        assert result.backup_path == tmp_path / "output.env.backup.2"
        assert (tmp_path / "output.env.backup.1").read_text() == "A=1\n"
        assert (tmp_path / "output.env.backup.2").read_text() == "A=2\n"
        assert output.read_text() == "A=3\n"

    def test_overwrite_skips_backup(self, tmp_path):
        output = tmp_path / "output.env"
        output.write_text("OLD_VAR=old_value\n")

        result = write_variables({"NEW_VAR": "x"}, output, OutputPolicy(overwrite_existing=True))

        assert result.backup_path is None
        assert not (tmp_path / "output.env.backup.1").exists()
        assert output.read_text() == "NEW_VAR=x\n"

    def test_preserve_reads_before_backup(self, tmp_path):
        output = tmp_path / "output.env"
        output.write_text("A=1\n")
        policy = OutputPolicy(preserve_names=frozenset({"A"}))

        result = write_variables({"A": "2", "B": "3"}, output, policy)

        assert output.read_text() == "A=1\nB=3\n"
        assert result.preserved == ["A"]
        assert (tmp_path / "output.env.backup.1").read_text() == "A=1\n"

    def test_count_reflects_filters(self, tmp_path):
        output = tmp_path / "output.env"
        policy = OutputPolicy(lowercase_filter=True)

        result = write_variables({"KEEP": "1", "drop": "2"}, output, policy)

        assert result.variable_count == 1

    def test_backup_failure_leaves_destination_untouched(self, tmp_path):
        output = tmp_path / "output.env"
        output.write_text("ORIGINAL=1\n")

        with patch("dotenvify.env_writer.shutil.copyfile", side_effect=OSError("denied")):
            with pytest.raises(BackupFailedError):
                write_variables({"NEW": "2"}, output)

        assert output.read_text() == "ORIGINAL=1\n"

    def test_write_failure_raises(self, tmp_path):
        output = tmp_path / "missing-dir" / "output.env"

        with pytest.raises(WriteFailedError, match="Failed to write output file"):
            write_variables({"A": "1"}, output)

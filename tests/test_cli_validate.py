"""Tests for the redsky validate CLI command."""

import tempfile

from typer.testing import CliRunner

from redsky.cli.main import app

runner = CliRunner()

VALID = (
    "apiVersion: apps.redskyops.dev/v1alpha1\n"
    "kind: Application\n"
    "metadata:\n"
    "  name: shop\n"
    "scenarios:\n"
    "  - custom:\n"
    "      image: busybox\n"
)


class TestValidateCommand:
    """Tests for redsky validate CLI command."""

    def test_validate_valid_application_exits_zero(self):
        """redsky validate with a valid application exits 0 and prints success."""
        with tempfile.NamedTemporaryFile(suffix=".yaml", mode="w", delete=False) as f:
            f.write(VALID)
            f.flush()
            result = runner.invoke(app, ["validate", f.name])
        assert result.exit_code == 0
        assert "1/1 applications valid" in result.output

    def test_validate_invalid_application_exits_nonzero(self):
        """redsky validate with an invalid application exits non-zero."""
        with tempfile.NamedTemporaryFile(suffix=".yaml", mode="w", delete=False) as f:
            f.write(VALID.replace("image:", "imag:"))
            f.flush()
            result = runner.invoke(app, ["validate", f.name])
        assert result.exit_code != 0
        assert "0/1 applications valid" in result.output

    def test_validate_ci_mode_concise_format(self):
        """redsky validate --ci prints one line per error."""
        with tempfile.NamedTemporaryFile(suffix=".yaml", mode="w", delete=False) as f:
            f.write(VALID.replace("image:", "imag:"))
            f.flush()
            result = runner.invoke(app, ["validate", "--ci", f.name])
        assert result.exit_code != 0
        assert f"{f.name}:7:7 -- scenarios.0.custom.imag" in result.output
        assert "Did you mean 'image'?" in result.output

    def test_validate_nonexistent_file_prints_error(self):
        """redsky validate with a nonexistent file prints a clear error."""
        result = runner.invoke(app, ["validate", "/nonexistent/app.yaml"])
        assert result.exit_code != 0
        assert "not found" in result.output.lower()


class TestMainOptions:
    """Tests for the top-level options."""

    def test_version(self):
        """--version prints the package version."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.output.startswith("redsky ")

    def test_no_args_shows_help(self):
        """Running without a command shows the command list."""
        result = runner.invoke(app, [])
        assert "generate" in result.output
        assert "status" in result.output

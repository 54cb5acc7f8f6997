from typer.testing import CliRunner

import bibvault
from bibvault.ui.cli import app


def test_get_version_matches_public_api() -> None:
    assert bibvault.get_version() == bibvault.__version__
    assert isinstance(bibvault.__version__, str)


def test_cli_version_flag() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0, result.output
    assert result.output.strip() == bibvault.get_version()

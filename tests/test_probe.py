import pytest

from ffibuild.errors import ToolMissing
from ffibuild.models import CommandResult
from ffibuild.probe import ToolchainProbe

from conftest import FakeRunner


def test_verify_reports_version_of_found_tool(tools_on_path: None) -> None:
    runner = FakeRunner(handlers={"cbindgen": lambda _: CommandResult(0, stdout="cbindgen 0.16.0\n")})

    availability = ToolchainProbe(runner=runner).verify("cbindgen")

    assert availability.found is True
    assert availability.version == "cbindgen 0.16.0"
    assert availability.path == "/usr/bin/cbindgen"
    assert runner.calls[0].args == ("cbindgen", "--version")


def test_verify_missing_tool_runs_nothing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("ffibuild.probe.shutil.which", lambda _: None)
    runner = FakeRunner()

    availability = ToolchainProbe(runner=runner).verify("cbindgen")

    assert availability.found is False
    assert availability.version is None
    assert runner.calls == []


def test_missing_cbindgen_suggests_cargo_install(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        "ffibuild.probe.shutil.which",
        lambda tool: "/usr/bin/cargo" if tool == "cargo" else None,
    )

    with pytest.raises(ToolMissing) as excinfo:
        ToolchainProbe(runner=FakeRunner()).require("cbindgen")

    assert excinfo.value.tool == "cbindgen"
    assert excinfo.value.code == "E_TOOL_MISSING"
    assert excinfo.value.hint == "Get it by running: cargo install cbindgen --vers '^0.16'"


def test_missing_cbindgen_without_cargo_has_no_install_command(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr("ffibuild.probe.shutil.which", lambda _: None)

    with pytest.raises(ToolMissing) as excinfo:
        ToolchainProbe(runner=FakeRunner()).require("cbindgen")

    assert excinfo.value.hint is None
    assert "not found in PATH" in str(excinfo.value)


def test_missing_cargo_points_at_rustup(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("ffibuild.probe.shutil.which", lambda _: None)

    with pytest.raises(ToolMissing) as excinfo:
        ToolchainProbe(runner=FakeRunner()).require("cargo")

    assert excinfo.value.hint is not None
    assert "rustup.rs" in excinfo.value.hint


@pytest.mark.parametrize(
    ("listing", "expected"),
    [
        ("cargo-x86_64-apple-darwin\nrust-src\nrust-std-x86_64-apple-darwin\n", True),
        ("cargo-x86_64-apple-darwin\nrust-std-x86_64-apple-darwin\n", False),
    ],
)
def test_has_component_reads_installed_list(
    tools_on_path: None,
    listing: str,
    expected: bool,
) -> None:
    runner = FakeRunner(handlers={"rustup": lambda _: CommandResult(0, stdout=listing)})

    assert ToolchainProbe(runner=runner).has_component("nightly", "rust-src") is expected
    assert runner.calls_for("rustup")[-1].args == (
        "rustup",
        "+nightly",
        "component",
        "list",
        "--installed",
    )


def test_has_component_is_false_when_rustup_fails(tools_on_path: None) -> None:
    runner = FakeRunner(handlers={"rustup": lambda _: CommandResult(1, stderr="error: toolchain not installed")})

    assert ToolchainProbe(runner=runner).has_component("nightly", "rust-src") is False

"""Tests for the MCP server surface."""

import json

import pytest

from buildrun.build.session import BuildPipeline
from buildrun.server import BUILD_MODES, BuildService, create_server


@pytest.fixture
def service(project, config, fake_runner):
    pipeline = BuildPipeline(project_root=project, config=config, runner=fake_runner)
    return BuildService(pipeline)


class TestBuildService:
    """Tests for BuildService tool payloads."""

    @pytest.mark.asyncio
    async def test_build_default(self, service, fake_runner):
        """Test a default build returns the pipeline result."""
        result = await service.build()

        assert result["success"] is True
        assert result["mode"] == "default"
        assert [s["name"] for s in result["steps"]] == ["configure", "compile"]
        assert fake_runner.programs == ["cmake", "make"]

    @pytest.mark.asyncio
    async def test_build_test_mode_failure(self, service, fake_runner):
        """Test a failing test run reports the runner's status."""
        fake_runner.exit_codes["ctest"] = 8

        result = await service.build("test")

        assert result["success"] is False
        assert result["exitCode"] == 8
        assert result["state"] == "failed"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("mode", ["clean", "release", ""])
    async def test_build_rejects_unknown_mode(self, service, fake_runner, mode):
        """Test only build modes are accepted by the build tool."""
        result = await service.build(mode)

        assert result["success"] is False
        assert "Unknown build mode" in result["error"]
        assert fake_runner.commands == []

    @pytest.mark.asyncio
    async def test_clean(self, service, project, fake_runner):
        """Test clean removes artifacts without running tools."""
        (project / "build").mkdir()

        result = await service.clean()

        assert result["success"] is True
        assert result["removed"] == ["build"]
        assert not (project / "build").exists()
        assert fake_runner.commands == []

    @pytest.mark.asyncio
    async def test_directory_error_payload(self, service, project):
        """Test a DirectoryError becomes an error payload, not an exception."""
        (project / "build").write_text("blocking file")

        result = await service.build("debug")

        assert result["success"] is False
        assert result["exitCode"] == 1
        assert result["mode"] == "debug"
        assert "build directory" in result["error"]

    @pytest.mark.asyncio
    async def test_state_tracks_last_result(self, service):
        """Test state reports the last run."""
        assert service.state()["lastResult"] is None
        assert service.state()["state"] == "idle"

        await service.build("debug")

        state = service.state()
        assert state["state"] == "ready"
        assert state["lastResult"]["mode"] == "debug"


class TestCreateServer:
    """Tests for server construction."""

    def test_build_modes(self):
        """Test the build tool accepts exactly the non-clean modes."""
        assert BUILD_MODES == ("default", "debug", "test")

    @pytest.mark.asyncio
    async def test_registers_tools(self, project, config):
        """Test the expected tools are registered."""
        mcp = create_server(str(project), config=config)

        tools = await mcp.list_tools()

        assert {t.name for t in tools} == {"build", "clean", "get_build_state"}

    @pytest.mark.asyncio
    async def test_registers_last_result_resource(self, project, config):
        """Test the last-result resource is registered as JSON."""
        mcp = create_server(str(project), config=config)

        resources = await mcp.list_resources()

        uris = {str(r.uri): r for r in resources}
        assert "build://last-result" in uris
        assert uris["build://last-result"].mimeType == "application/json"

    @pytest.mark.asyncio
    async def test_last_result_resource_initially_null(self, project, config):
        """Test the resource reads as JSON null before any run."""
        mcp = create_server(str(project), config=config)

        contents = await mcp.read_resource("build://last-result")

        assert json.loads(list(contents)[0].content) is None

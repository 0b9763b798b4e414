"""Tests for MCP tool definitions and execution."""

import pytest

from obreon_chronicle.errors import ClimateConfigError
from obreon_chronicle.tools import execute_tool, make_tools


async def start(engine):
    return await execute_tool(engine, "start_journal", {
        "location": "Tinderspring",
        "date": "2863/05/01 12:00",
    })


class TestMakeTools:
    """Tests for make_tools function."""

    def test_make_tools_returns_all_tools(self, engine):
        tools = make_tools(engine)

        assert set(tools) == {
            "start_journal",
            "record_activity",
            "travel",
            "latest_journal",
            "list_journals",
            "read_journal",
            "split_journal",
            "merge_journals",
            "message_of_the_day",
        }

    def test_tool_schema_structure(self, engine):
        """Tool schemas have proper structure."""
        for tool_name, tool_def in make_tools(engine).items():
            assert tool_def["name"] == tool_name
            assert isinstance(tool_def["description"], str)
            assert tool_def["inputSchema"]["type"] == "object"

    def test_duration_accepts_object_or_list(self, engine):
        schema = make_tools(engine)["travel"]["inputSchema"]["properties"]["duration"]
        assert [option["type"] for option in schema["oneOf"]] == ["object", "array"]


class TestExecuteTool:
    """Tests for execute_tool function."""

    @pytest.mark.asyncio
    async def test_start_journal(self, engine):
        result = await start(engine)

        assert result["success"] is True
        assert result["name"] == "Journal:2863/5/1"
        assert result["date"] == "Genedem 1st of Canicula"
        assert result["location"] == "Tinderspring"
        assert result["entries"] == 2

    @pytest.mark.asyncio
    async def test_record_activity(self, engine):
        await start(engine)

        result = await execute_tool(engine, "record_activity", {
            "duration": {"hour": 4},
            "text": "Bumbling around",
        })

        assert result["success"] is True
        assert result["message"] == "Journal for 2863/5/1 updated with new entry"
        assert result["entries"] == 3

    @pytest.mark.asyncio
    async def test_travel_with_duration_list(self, engine):
        await start(engine)

        result = await execute_tool(engine, "travel", {
            "duration": [{"hour": 16}, {"hour": 2}],
            "destination": "Qidiraethon",
        })

        assert result["success"] is True
        assert result["message"] == "Journal for 2863/5/1-2863/5/2 updated with new entry"
        assert result["date"] == "2863/5/1-2863/5/2"
        assert result["location"] == "Qidiraethon"

    @pytest.mark.asyncio
    async def test_latest_journal(self, engine):
        await start(engine)

        result = await execute_tool(engine, "latest_journal", {})

        assert result["success"] is True
        assert result["notes"].startswith("Location: Tinderspring<br>")

    @pytest.mark.asyncio
    async def test_list_and_read(self, engine):
        await start(engine)

        listed = await execute_tool(engine, "list_journals", {})
        assert listed["count"] == 1
        assert listed["journals"][0]["name"] == "Journal:2863/5/1"

        read = await execute_tool(engine, "read_journal", {"name": "Journal:2863/5/1"})
        assert read["success"] is True
        assert read["journal"]["entries"][0]["type"] == "TravelEntry"

    @pytest.mark.asyncio
    async def test_split_then_merge(self, engine):
        await start(engine)
        await execute_tool(engine, "travel", {"duration": {"hour": 18}, "destination": "Qidiraethon"})

        split = await execute_tool(engine, "split_journal", {})
        assert split == {"success": True, "count": 2, "names": ["Journal:2863/5/1", "Journal:2863/5/2"]}

        merged = await execute_tool(engine, "merge_journals", {"names": split["names"]})
        assert merged["success"] is True
        assert merged["name"] == "Journal:2863/5/1-2863/5/2"

    @pytest.mark.asyncio
    async def test_message_of_the_day(self, engine):
        await start(engine)

        result = await execute_tool(engine, "message_of_the_day", {"player_name": "Aelis"})

        assert result["success"] is True
        assert result["message"].startswith("Welcome Aelis!\nIt's 12:00 on Genedem 1st of Canicula")

    @pytest.mark.asyncio
    async def test_unknown_tool(self, engine):
        result = await execute_tool(engine, "unknown_tool", {})

        assert result["success"] is False
        assert "Unknown tool" in result["error"]


class TestToolErrors:
    """Tests for error mapping in execute_tool."""

    @pytest.mark.asyncio
    async def test_no_journal(self, engine):
        result = await execute_tool(engine, "latest_journal", {})

        assert result["success"] is False
        assert result["error_type"] == "no_journal"
        assert "start_journal" in result["suggestion"]

    @pytest.mark.asyncio
    async def test_handout_not_found(self, engine):
        result = await execute_tool(engine, "read_journal", {"name": "Journal:2863/9/9"})
        assert result["error_type"] == "handout_not_found"

    @pytest.mark.asyncio
    async def test_aggregation_mismatch(self, engine):
        await start(engine)
        await execute_tool(engine, "travel", {"duration": {"hour": 18}, "destination": "Qidiraethon"})
        await execute_tool(engine, "split_journal", {})

        result = await execute_tool(engine, "merge_journals", {"names": ["Journal:2863/5/1"]})

        assert result["error_type"] == "aggregation_mismatch"

    @pytest.mark.asyncio
    async def test_parse_error(self, engine):
        result = await execute_tool(engine, "start_journal", {
            "location": "Tinderspring",
            "date": "the first of spring",
        })
        assert result["error_type"] == "parse_error"

    @pytest.mark.asyncio
    async def test_bad_duration_is_parse_error(self, engine):
        await start(engine)
        result = await execute_tool(engine, "travel", {"duration": {"league": 3}, "destination": "Qidiraethon"})
        assert result["error_type"] == "parse_error"

    @pytest.mark.asyncio
    async def test_missing_argument(self, engine):
        await start(engine)
        result = await execute_tool(engine, "record_activity", {"duration": {"hour": 1}})
        assert result["error_type"] == "invalid_arguments"

    @pytest.mark.asyncio
    async def test_location_without_date(self, engine):
        result = await execute_tool(engine, "start_journal", {"location": "Tinderspring"})
        assert result["error_type"] == "invalid_arguments"

    @pytest.mark.asyncio
    async def test_other_chronicle_errors(self, engine, monkeypatch):
        def broken():
            raise ClimateConfigError("No season covers 2863/5/1")

        monkeypatch.setattr(engine, "latest_journal", broken)
        result = await execute_tool(engine, "latest_journal", {})
        assert result["error_type"] == "chronicle_error"

    @pytest.mark.asyncio
    async def test_unexpected_error(self, engine, monkeypatch):
        def broken():
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(engine, "list_journals", broken)
        result = await execute_tool(engine, "list_journals", {})

        assert result["success"] is False
        assert result["error_type"] == "unexpected_error"
        assert result["error"] == "disk on fire"

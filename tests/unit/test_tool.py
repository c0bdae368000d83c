"""Unit tests for Tool and define_tool."""

import logging
import threading

import pytest

from anthropic_tools.tools import Tool, define_tool

SCHEMA = {"type": "object", "properties": {"city": {"type": "string"}}, "required": ["city"]}
DESCRIPTION = "Get the current weather for a city"


class TestToolValidation:
    def test_valid_tool(self):
        weather = Tool(name="weather", description=DESCRIPTION, input_schema=SCHEMA)
        assert weather.has_implementation is False
        assert weather.to_dict() == {
            "name": "weather",
            "description": DESCRIPTION,
            "input_schema": SCHEMA,
        }

    def test_empty_name(self):
        with pytest.raises(ValueError, match="name"):
            Tool(name="", description=DESCRIPTION, input_schema=SCHEMA)

    def test_empty_description(self):
        with pytest.raises(ValueError, match="description"):
            Tool(name="weather", description="", input_schema=SCHEMA)

    def test_schema_must_be_mapping(self):
        with pytest.raises(ValueError, match="input_schema"):
            Tool(name="weather", description=DESCRIPTION, input_schema=["city"])

    def test_short_description_warns(self, caplog: pytest.LogCaptureFixture):
        with caplog.at_level(logging.WARNING, logger="anthropic_tools.tools.tool"):
            Tool(name="weather", description="Weather", input_schema=SCHEMA)
        assert "very short description" in caplog.text

    def test_frozen(self):
        weather = Tool(name="weather", description=DESCRIPTION, input_schema=SCHEMA)
        with pytest.raises(AttributeError):
            weather.name = "other"  # type: ignore[misc]


class TestToolCreate:
    def test_parameters_alias(self):
        assert Tool.create("weather", DESCRIPTION, parameters=SCHEMA).input_schema == SCHEMA

    def test_conflicting_schemas(self):
        with pytest.raises(ValueError, match="both"):
            Tool.create("weather", DESCRIPTION, SCHEMA, parameters={"type": "object"})

    def test_same_schema_twice_is_fine(self):
        assert Tool.create("weather", DESCRIPTION, SCHEMA, parameters=SCHEMA).input_schema == SCHEMA

    def test_missing_schema(self):
        with pytest.raises(ValueError, match="input_schema"):
            Tool.create("weather", DESCRIPTION)

    def test_from_dict(self):
        tool = Tool.from_dict(
            {"name": "weather", "description": DESCRIPTION, "input_schema": SCHEMA},
            implementation=lambda tool_input: "sunny",
        )
        assert tool.has_implementation is True


class TestToolCall:
    @pytest.mark.asyncio
    async def test_async_implementation(self):
        async def impl(tool_input):
            return f"sunny in {tool_input['city']}"

        tool = Tool(name="weather", description=DESCRIPTION, input_schema=SCHEMA, implementation=impl)
        assert await tool.call({"city": "Rome"}) == "sunny in Rome"

    @pytest.mark.asyncio
    async def test_sync_implementation_runs_off_loop_thread(self):
        main_thread = threading.get_ident()

        def impl(tool_input):
            return threading.get_ident()

        tool = Tool(name="weather", description=DESCRIPTION, input_schema=SCHEMA, implementation=impl)
        assert await tool.call({}) != main_thread

    @pytest.mark.asyncio
    async def test_callable_returning_awaitable(self):
        async def fetch(city):
            return {"temp": 21, "city": city}

        tool = Tool(
            name="weather",
            description=DESCRIPTION,
            input_schema=SCHEMA,
            implementation=lambda tool_input: fetch(tool_input["city"]),
        )
        assert await tool.call({"city": "Oslo"}) == {"temp": 21, "city": "Oslo"}

    @pytest.mark.asyncio
    async def test_no_implementation(self):
        tool = Tool(name="weather", description=DESCRIPTION, input_schema=SCHEMA)
        with pytest.raises(NotImplementedError, match="weather"):
            await tool.call({})


class TestDefineTool:
    @pytest.mark.asyncio
    async def test_defaults_from_function(self):
        @define_tool(input_schema=SCHEMA)
        def get_weather(tool_input):
            """Get the current weather for a city."""
            return "sunny"

        assert isinstance(get_weather, Tool)
        assert get_weather.name == "get_weather"
        assert get_weather.description == "Get the current weather for a city."
        assert await get_weather.call({"city": "Rome"}) == "sunny"

    def test_explicit_name_and_description(self):
        @define_tool(input_schema=SCHEMA, name="weather", description=DESCRIPTION)
        async def impl(tool_input):
            return "sunny"

        assert (impl.name, impl.description) == ("weather", DESCRIPTION)

    def test_missing_docstring_rejected(self):
        with pytest.raises(ValueError, match="description"):

            @define_tool(input_schema=SCHEMA)
            def undocumented(tool_input):
                return None

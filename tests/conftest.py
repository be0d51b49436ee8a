"""Plugin sources shared across the test suite."""

from __future__ import annotations

import pytest

SUM_PLUGIN = '''
class ToolPlugin:
    @staticmethod
    def define_tool(deps):
        class Factory:
            @staticmethod
            def create_tool(params):
                return {"sum": params["a"] + params["b"]}

        return Factory
'''

MAPPING_PLUGIN = '''
ToolPlugin = {
    "defineTool": lambda deps: {"createTool": lambda p: {"sum": p["a"] + p["b"]}},
}
'''

BAD_DEFINE_PLUGIN = '''
class ToolPlugin:
    @staticmethod
    def define_tool(deps):
        raise ValueError("bad")
'''

STRICT_CREATE_PLUGIN = '''
class ToolPlugin:
    @staticmethod
    def define_tool(deps):
        class Factory:
            @staticmethod
            def create_tool(params):
                raise RuntimeError("create_tool must not run")

        return Factory
'''

SLEEPY_PLUGIN = '''
import time


class ToolPlugin:
    @staticmethod
    def define_tool(deps):
        class Factory:
            @staticmethod
            def create_tool(params):
                time.sleep(params.get("delay", 0))
                return {"label": params["label"]}

        return Factory
'''

CRASHING_PLUGIN = '''
import os


class ToolPlugin:
    @staticmethod
    def define_tool(deps):
        class Factory:
            @staticmethod
            def create_tool(params):
                os._exit(3)

        return Factory
'''

CHATTY_PLUGIN = '''
print("hello from plugin")


class ToolPlugin:
    @staticmethod
    def define_tool(deps):
        print("defining")

        class Factory:
            @staticmethod
            def create_tool(params):
                print("creating", params)
                return {"quiet": False}

        return Factory
'''

SCHEMA_PLUGIN = '''
class ToolPlugin:
    @staticmethod
    def define_tool(deps):
        Params = deps.create_model("Params", city=(str, ...), days=(int, 3))

        class Factory:
            @staticmethod
            def create_tool(params):
                parsed = Params(**params)
                return {
                    "name": "forecast",
                    "city": parsed.city,
                    "days": parsed.days,
                    "json_schema": deps.to_json_schema(Params),
                    "type_definition": deps.to_type_definition("forecast", Params),
                    "shape": deps.serialize_schema(Params),
                }

        return Factory
'''


@pytest.fixture
def sum_plugin() -> str:
    return SUM_PLUGIN


@pytest.fixture
def mapping_plugin() -> str:
    return MAPPING_PLUGIN


@pytest.fixture
def bad_define_plugin() -> str:
    return BAD_DEFINE_PLUGIN


@pytest.fixture
def strict_create_plugin() -> str:
    return STRICT_CREATE_PLUGIN


@pytest.fixture
def sleepy_plugin() -> str:
    return SLEEPY_PLUGIN


@pytest.fixture
def crashing_plugin() -> str:
    return CRASHING_PLUGIN


@pytest.fixture
def chatty_plugin() -> str:
    return CHATTY_PLUGIN


@pytest.fixture
def schema_plugin() -> str:
    return SCHEMA_PLUGIN

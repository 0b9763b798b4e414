"""MCP tool definitions wrapping the chronicle engine."""

from __future__ import annotations

import logging
from typing import Any

from .engine import ChronicleEngine
from .errors import (
    AggregationMismatchError,
    ChronicleError,
    HandoutNotFoundError,
    NoJournalError,
    ParseError,
)
from .journal import Journal
from .store import Handout

logger = logging.getLogger(__name__)

_DURATION_SCHEMA = {
    "oneOf": [
        {"type": "object", "additionalProperties": {"type": "integer"}},
        {"type": "array", "items": {"type": "object", "additionalProperties": {"type": "integer"}}},
    ],
    "description": "Time spent, e.g. {\"hour\": 4} or [{\"day\": 1}, {\"hour\": 2}]",
}


def make_tools(engine: ChronicleEngine) -> dict[str, dict]:
    """Create MCP tool definitions for the chronicle engine.

    Returns:
        Dict mapping tool names to their definitions.
    """

    tools = {}

    # ========== start_journal ==========
    tools["start_journal"] = {
        "name": "start_journal",
        "description": "Start a new journal. Give a location and date to begin fresh; give neither to continue from the latest journal.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "location": {
                    "type": "string",
                    "description": "Where the party is",
                },
                "date": {
                    "type": "string",
                    "description": "Obreon date, e.g. 2863/05/01 or 2863/05/01 12:00",
                },
            },
        },
    }

    # ========== record_activity ==========
    tools["record_activity"] = {
        "name": "record_activity",
        "description": "Add an activity to the latest journal, rolling weather for any days that pass.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "duration": _DURATION_SCHEMA,
                "text": {
                    "type": "string",
                    "description": "What the party did",
                },
            },
            "required": ["duration", "text"],
        },
    }

    # ========== travel ==========
    tools["travel"] = {
        "name": "travel",
        "description": "Add a journey to the latest journal, rolling weather for any days that pass.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "duration": _DURATION_SCHEMA,
                "destination": {
                    "type": "string",
                    "description": "Where the party travelled to",
                },
            },
            "required": ["duration", "destination"],
        },
    }

    # ========== latest_journal ==========
    tools["latest_journal"] = {
        "name": "latest_journal",
        "description": "Show the most recent journal.",
        "inputSchema": {"type": "object", "properties": {}},
    }

    # ========== list_journals ==========
    tools["list_journals"] = {
        "name": "list_journals",
        "description": "List journal handouts in date order.",
        "inputSchema": {"type": "object", "properties": {}},
    }

    # ========== read_journal ==========
    tools["read_journal"] = {
        "name": "read_journal",
        "description": "Read a journal handout by name.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "name": {
                    "type": "string",
                    "description": "Handout name, e.g. Journal:2863/5/1",
                },
            },
            "required": ["name"],
        },
    }

    # ========== split_journal ==========
    tools["split_journal"] = {
        "name": "split_journal",
        "description": "Split the latest multi-day journal into one handout per day.",
        "inputSchema": {"type": "object", "properties": {}},
    }

    # ========== merge_journals ==========
    tools["merge_journals"] = {
        "name": "merge_journals",
        "description": "Merge day journals back into a single journal, rejoining entries that cross midnight.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "names": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Handout names to merge",
                },
            },
            "required": ["names"],
        },
    }

    # ========== message_of_the_day ==========
    tools["message_of_the_day"] = {
        "name": "message_of_the_day",
        "description": "Greeting for a player: date, moon, location and weather.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "player_name": {
                    "type": "string",
                    "description": "Name to greet",
                },
            },
            "required": ["player_name"],
        },
    }

    return tools


def _summary(handout: Handout, journal: Journal) -> dict[str, Any]:
    return {
        "name": handout.name,
        "id": handout.id,
        "date": journal.long_date_string,
        "location": journal.end_location,
        "entries": len(journal),
    }


async def execute_tool(engine: ChronicleEngine, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
    """Execute a tool and return the result.

    Args:
        engine: The chronicle engine
        name: Tool name
        arguments: Tool arguments

    Returns:
        Result dictionary
    """
    try:
        if name == "start_journal":
            handout, journal = engine.start_journal(
                location=arguments.get("location"),
                date=arguments.get("date"),
            )
            return {
                "success": True,
                **_summary(handout, journal),
                "message": f"Started {handout.name}",
            }

        elif name == "record_activity":
            handout, journal = engine.record_activity(
                duration=arguments["duration"],
                text=arguments["text"],
            )
            return {
                "success": True,
                **_summary(handout, journal),
                "message": f"Journal for {journal.date_string} updated with new entry",
            }

        elif name == "travel":
            handout, journal = engine.travel(
                duration=arguments["duration"],
                destination=arguments["destination"],
            )
            return {
                "success": True,
                **_summary(handout, journal),
                "message": f"Journal for {journal.date_string} updated with new entry",
            }

        elif name == "latest_journal":
            handout, journal = engine.latest_journal()
            return {
                "success": True,
                **_summary(handout, journal),
                "notes": handout.notes,
            }

        elif name == "list_journals":
            journals = engine.list_journals()
            return {
                "success": True,
                "count": len(journals),
                "journals": [_summary(handout, journal) for handout, journal in journals],
            }

        elif name == "read_journal":
            journal, notes = engine.read_journal(arguments["name"])
            return {
                "success": True,
                "name": arguments["name"],
                "date": journal.long_date_string,
                "notes": notes,
                "journal": journal.to_dict(),
            }

        elif name == "split_journal":
            handouts = engine.split_latest_by_day()
            return {
                "success": True,
                "count": len(handouts),
                "names": [handout.name for handout in handouts],
            }

        elif name == "merge_journals":
            handout, journal = engine.merge_journals(arguments["names"])
            return {
                "success": True,
                **_summary(handout, journal),
                "message": f"Merged {len(arguments['names'])} journals into {handout.name}",
            }

        elif name == "message_of_the_day":
            return {
                "success": True,
                "message": engine.message_of_the_day(arguments["player_name"]),
            }

        else:
            return {
                "success": False,
                "error": f"Unknown tool: {name}",
            }

    except NoJournalError as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "no_journal",
            "suggestion": "Use start_journal with a location and date first",
        }

    except HandoutNotFoundError as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "handout_not_found",
            "suggestion": "Use list_journals to see available journals",
        }

    except AggregationMismatchError as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "aggregation_mismatch",
            "suggestion": "Include every day a multi-day entry spans",
        }

    except ParseError as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "parse_error",
        }

    except ChronicleError as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "chronicle_error",
        }

    except (KeyError, ValueError) as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "invalid_arguments",
        }

    except Exception as e:
        logger.exception("Tool %s failed", name)
        return {
            "success": False,
            "error": str(e),
            "error_type": "unexpected_error",
        }

"""Obreon Chronicle Configuration - Advanced Python Example

Copy to your campaign root as chronicle_config.py for hooks and extra tools.

Convention:
- CONFIG dict for static configuration (same structure as TOML)
- Functions named hook_* become lifecycle hooks
- Functions named custom_tool_* become MCP tools
"""

import logging

logger = logging.getLogger("chronicle_config")

# =============================================================================
# Static Configuration (same structure as TOML)
# =============================================================================

CONFIG = {
    "campaign": {
        "name": "Osherion",
    },
    "directories": {
        "handouts": "chronicle/handouts",
    },
    "climate_file": "osherion_climate.toml",
    "dates": {
        # '2863/5/1' typed on its own means eight in the morning
        "defaults": {"hour": 8, "minute": 0},
    },
    "storage": {
        "lock_timeout": 10,
    },
}


# =============================================================================
# Hooks - Called during engine operations
# =============================================================================

def hook_pre_save(journal):
    """Called before a journal is written to its handout.

    Must return the journal to save (the same one, or a replacement).
    """
    return journal


def hook_post_save(handout):
    """Called after a journal handout is written.

    Useful for notifications, syncing, etc.
    """
    logger.info("Journal handout %s saved", handout.name)


# =============================================================================
# Custom Tools - Exposed as additional MCP tools
# =============================================================================

def custom_tool_forecast(engine, params) -> dict:
    """Roll the next few days' weather without recording it.

    params: {"days": 3}
    """
    _, journal = engine.latest_journal()
    weather = journal.latest_weather or engine.climate_model.get_weather_for_day(journal.end)

    days = []
    day = journal.end
    for _ in range(int(params.get("days", 3))):
        day = day.next_day.start_of_day
        days.append(day)

    states = engine.climate_model.weather_for_days(weather, days)
    return {
        "success": True,
        "forecast": [
            {"date": state.date.to_date_string(), "weather": state.weather_text()}
            for state in states
        ],
    }

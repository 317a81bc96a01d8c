"""
Configuration for pytest: import path, logging and shared fixtures.
"""

import sys
from pathlib import Path
import pytest
from dataclasses import dataclass


# Add the repository root to the Python path so collectkit imports without installing
parent_dir = Path(__file__).parent.parent
sys.path.insert(0, str(parent_dir))

# Import after path setup
from collectkit import CollectkitSettings, configure_logging, reset_settings
from collectkit.collection import reset_random


@dataclass
class Person:
    """Record type used by map_into / group_by tests."""
    name: str
    department: str = ""


@pytest.fixture(autouse=True)
def isolated_settings():
    """Give every test fresh, seeded settings and a fresh random source."""
    settings = CollectkitSettings(log_level="DEBUG", random_seed=1234)
    reset_settings(settings)
    reset_random()
    configure_logging(settings)
    yield settings
    reset_settings(None)
    reset_random()


@pytest.fixture
def staff():
    """Department records as plain mappings."""
    return [
        {"name": "Akmal", "department": "IT"},
        {"name": "Muhammad", "department": "IT"},
        {"name": "Pridianto", "department": "HR"},
    ]


@pytest.fixture
def people():
    """Department records as objects with attributes."""
    return [
        Person("Akmal", "IT"),
        Person("Muhammad", "IT"),
        Person("Pridianto", "HR"),
    ]


@pytest.fixture
def counting_factory():
    """
    Infinite counting factory that records how many values it produced
    and how many times it was invoked.
    """
    stats = {"produced": 0, "invocations": 0}

    def factory():
        stats["invocations"] += 1
        value = 0
        while True:
            stats["produced"] += 1
            yield value
            value += 1

    factory.stats = stats
    return factory

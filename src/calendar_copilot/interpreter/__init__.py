"""Extraction and parsing of calendar commands embedded in model output."""

from __future__ import annotations

from .extractor import extract_json_object
from .parser import build_command, parse_command
from .repair import repair_json
from .session import CommandInterpreter

__all__ = ["CommandInterpreter", "build_command", "extract_json_object", "parse_command", "repair_json"]

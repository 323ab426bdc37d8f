"""
Skill discovery for the daemon.

A skill is a directory under the skills root. ``SKILL.md`` holds free-form
instructions; ``tool.py`` may export ``tools`` (a list) or ``tool`` (a single
BaseTool instance). Loaded tools are handed to the caller, which registers
them explicitly; the agent core never scans the filesystem itself.
"""

from typing import List
import importlib.util
import os
import types

import structlog

from toolgate.domain.tool.base_tool import BaseTool

logger = structlog.get_logger(__name__)

SKILL_DOC = "SKILL.md"
SKILL_MODULE = "tool.py"


class SkillsLoader:

    def __init__(self, skills_dir: str):
        self.skills_dir = os.path.abspath(skills_dir)

    def list_skill_directories(self) -> List[str]:
        if not os.path.isdir(self.skills_dir):
            return []
        with os.scandir(self.skills_dir) as entries:
            return sorted(entry.path for entry in entries if entry.is_dir())

    def load_skill_instructions(self) -> List[str]:
        instructions = []
        for directory in self.list_skill_directories():
            doc_path = os.path.join(directory, SKILL_DOC)
            if not os.path.isfile(doc_path):
                continue
            with open(doc_path, "r", encoding="utf-8") as handle:
                instructions.append(handle.read().strip())
        return instructions

    def load_tools(self) -> List[BaseTool]:
        tools: List[BaseTool] = []
        for directory in self.list_skill_directories():
            module_path = os.path.join(directory, SKILL_MODULE)
            if not os.path.isfile(module_path):
                continue

            module = self._import(os.path.basename(directory), module_path)
            exported = getattr(module, "tools", None) or getattr(module, "tool", None)
            candidates = exported if isinstance(exported, (list, tuple)) else [exported]

            found = [candidate for candidate in candidates if isinstance(candidate, BaseTool)]
            logger.info("Skill loaded", skill=os.path.basename(directory), tools=[tool.name for tool in found])
            tools.extend(found)
        return tools

    @staticmethod
    def _import(skill_name: str, module_path: str) -> types.ModuleType:
        spec = importlib.util.spec_from_file_location(f"toolgate_skills.{skill_name}", module_path)
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        return module

import textwrap

from toolgate.application.plugins.skills_loader import SkillsLoader

ECHO_SKILL = textwrap.dedent('''
    from pydantic import BaseModel

    from toolgate.domain.tool.base_tool import FunctionTool


    class EchoArgs(BaseModel):
        text: str


    async def echo(args, context):
        return {"echoed": args.text}


    tool = FunctionTool(name="skill_echo", description="Echoes text", parameters=EchoArgs, handler=echo)
''')


class TestSkillsLoader:
    """Skill directories with instructions and tool modules."""

    def test_missing_directory_has_no_skills(self, tmp_path):
        """Test that an absent skills root is empty."""
        loader = SkillsLoader(str(tmp_path / "skills"))
        assert loader.load_tools() == []
        assert loader.load_skill_instructions() == []

    def test_instructions_and_tools_are_loaded(self, tmp_path):
        """Test that SKILL.md and tool.py are discovered per directory."""
        echo_dir = tmp_path / "skills" / "echo"
        echo_dir.mkdir(parents=True)
        (echo_dir / "SKILL.md").write_text("  Use skill_echo to repeat text.\n")
        (echo_dir / "tool.py").write_text(ECHO_SKILL)
        (tmp_path / "skills" / "docs_only").mkdir()
        (tmp_path / "skills" / "docs_only" / "SKILL.md").write_text("Read the docs.")

        loader = SkillsLoader(str(tmp_path / "skills"))

        assert loader.load_skill_instructions() == ["Read the docs.", "Use skill_echo to repeat text."]
        assert [tool.name for tool in loader.load_tools()] == ["skill_echo"]

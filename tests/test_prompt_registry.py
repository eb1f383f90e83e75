"""Tests for the prompt registry."""

from pathlib import Path

import pytest

from aicademy.prompts import registry
from aicademy.prompts.registry import clear_cache, get_prompt, list_prompts


class TestGetPrompt:
    """Tests for get_prompt."""

    def test_tutor_prompt_exists(self):
        assert "tutor/system_prompt" in list_prompts()

    def test_substitution(self):
        prompt = get_prompt("tutor/system_prompt", student_name="Ana", grade_level="10")

        assert "Student profile: Ana, Grade 10" in prompt
        # untouched placeholders stay
        assert "{module_title}" in prompt

    def test_values_are_not_expanded_again(self):
        """Placeholder text inside a value is kept verbatim."""
        prompt = get_prompt(
            "tutor/system_prompt", student_name="{quiz_performance}", quiz_performance="3/3 correct"
        )

        assert "Student profile: {quiz_performance}," in prompt

    def test_prompts_ship_inside_package(self):
        assert registry.PROMPTS_DIR == Path(registry.__file__).parent
        assert (registry.PROMPTS_DIR / "tutor" / "system_prompt.md").exists()

    def test_missing_prompt(self):
        with pytest.raises(FileNotFoundError, match="Prompt not found"):
            get_prompt("tutor/nope")

    def test_custom_directory(self, tmp_path, monkeypatch):
        prompts_dir = tmp_path / "prompts"
        (prompts_dir / "greetings").mkdir(parents=True)
        (prompts_dir / "greetings" / "hello.md").write_text("Hello {name}!", encoding="utf-8")
        monkeypatch.setattr(registry, "PROMPTS_DIR", prompts_dir)
        clear_cache()

        assert get_prompt("greetings/hello", use_cache=False, name="Ana") == "Hello Ana!"
        assert list_prompts() == ["greetings/hello"]
        clear_cache()

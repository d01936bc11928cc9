"""Prompt builders and template-based prompt generators."""

from agentloop.prompts.build import (
    BuiltPrompts,
    InitialPrompts,
    RetryPrompts,
    build_error_prompt,
    build_prompts,
    build_system_prompt,
    build_user_prompt,
)
from agentloop.prompts.templates import PromptTemplate, compile_template, load_template

__all__ = [
    "BuiltPrompts",
    "InitialPrompts",
    "PromptTemplate",
    "RetryPrompts",
    "build_error_prompt",
    "build_prompts",
    "build_system_prompt",
    "build_user_prompt",
    "compile_template",
    "load_template",
]

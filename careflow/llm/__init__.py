"""
LLM Module
==========

Provider-agnostic chat model creation and the generation client.
"""

from careflow.llm.generation import GenerationClient, create_llm

__all__ = ["GenerationClient", "create_llm"]

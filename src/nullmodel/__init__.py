"""
nullmodel: a drop-in fake for the OpenAI, Anthropic and Gemini HTTP APIs.

Serves canned persona content with realistic streaming, simulated latency
and optional fault injection, so client code and chat UIs can be developed
and tested without calling a real model.
"""

__version__ = "0.1.0"

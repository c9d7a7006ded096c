"""Agents module - the chat engine facade."""

from .engine import ChatEngine

__all__ = ['ChatEngine']

"""Quill: terminal client for a multi-tenant notes service."""

# CUI // SP-PROPIN
"""LLM provider layer: vendor-agnostic request/response types and router."""

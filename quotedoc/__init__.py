"""Quotation document generation service."""

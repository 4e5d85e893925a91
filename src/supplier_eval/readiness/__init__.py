"""Supplier readiness classification (READY / CONDITIONAL / NOT_READY)."""

from supplier_eval.readiness.classifier import classify, render_rationale, resolve_indicator

__all__ = ["classify", "render_rationale", "resolve_indicator"]

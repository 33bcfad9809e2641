# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
qualinfer: qualifier inference for generic call sites.

Each type parameter of a generic call is constrained in several independent
qualifier lattices at once (one per hierarchy top). This package groups the
raw relations recorded at a call site into per-target accumulators and solves
them to a fixed point, producing one qualifier per (target, top) or a precise
failure.

Modules:
  - core: ids, type table, spans and diagnostics
  - lattice: the lattice oracle protocol and finite lattices
  - constraints: constraint records and per-target accumulators
  - constraint_map: grouping of raw edges into accumulators
  - solver: fixed-point propagation per hierarchy top
  - infer: caller-facing session/result objects
  - script: textual constraint scripts (lark)
  - driver: CLI entrypoint
"""

__all__ = [
	"core",
	"lattice",
	"constraints",
	"constraint_map",
	"failures",
	"solver",
	"infer",
	"script",
	"driver",
]

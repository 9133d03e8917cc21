"""
Form Logic Package

The conditional branching engine of a lead-form builder.

ARCHITECTURAL GUARANTEE:
------------------------
This package contains ZERO knowledge of:
    - Persistence technology
    - Rendering / drag-and-drop
    - AI content generation
    - Spreadsheet export layout

This package defines ROUTING STRUCTURE only:
    - model:        the FormGraph (questions, answers, end pages, logic)
    - resolver:     fill-time "what comes next?"
    - mutations:    author edits that keep the graph consistent
    - propagation:  "apply this logic to all answers below"
    - validator:    whole-graph diagnostics

All other collaborators consume the graph, NavigationStep values,
validation reports and mutation results.
"""

__version__ = "0.1.0"

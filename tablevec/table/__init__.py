"""
Table-level embedding support.

This package reconciles embedding definitions with schemas, materializes
vector columns on write, and embeds queries on search.
"""

from tablevec.table.reconcile import SchemaReconciler, ReconciledSchema, synthesize_dest_name
from tablevec.table.materialize import MaterializationPipeline, PipelineConfig
from tablevec.table.query import QueryEmbedder
from tablevec.table.table import Table, to_batches
from tablevec.table.builder import CreateMode, CreateTableBuilder

__all__ = [
    "SchemaReconciler",
    "ReconciledSchema",
    "synthesize_dest_name",
    "MaterializationPipeline",
    "PipelineConfig",
    "QueryEmbedder",
    "Table",
    "to_batches",
    "CreateMode",
    "CreateTableBuilder",
]

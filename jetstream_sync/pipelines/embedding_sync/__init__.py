# Embedding Sync Pipeline
# Nodes for one record type's embedding batch: select, embed, mark, monitor

from .select_records_node import select_records_node
from .embed_records_node import embed_records_node
from .mark_embedded_node import mark_embedded_node
from .monitor_batch_node import monitor_batch_node

__all__ = [
    "select_records_node",
    "embed_records_node",
    "mark_embedded_node",
    "monitor_batch_node"
]

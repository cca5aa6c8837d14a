"""Fake FalkorDB objects and small helpers shared by the tests.

Simulate driver output without requiring a running FalkorDB.
"""


class FakeQueryResult:
    """Simulates FalkorDB's QueryResult object.

    FalkorDB returns:
      - header: list of (type_int, column_name) tuples
      - result_set: list of lists (positional, NOT named dicts)
      - write statistics as attributes
    """
    def __init__(self, header=None, result_set=None, **stats):
        self.header = header or []
        self.result_set = result_set
        self.nodes_created = stats.get("nodes_created", 0)
        self.nodes_deleted = stats.get("nodes_deleted", 0)
        self.relationships_created = stats.get("relationships_created", 0)
        self.relationships_deleted = stats.get("relationships_deleted", 0)
        self.properties_set = stats.get("properties_set", 0)


class FakeNode:
    """Simulates FalkorDB's Node object returned for full node queries."""
    def __init__(self, node_id, labels, properties):
        self.id = node_id
        self.labels = labels
        self.properties = properties

    def __repr__(self):
        return f"Node({self.labels}, {self.properties})"


class FakeEdge:
    """Simulates FalkorDB's Edge object returned for full relationship queries."""
    def __init__(self, edge_id, relation, properties):
        self.id = edge_id
        self.relation = relation
        self.properties = properties


def entry_node(timestamp, content, node_id=1):
    return {"_id": node_id, "_labels": ["JournalEntry"], "date": timestamp, "content": content}


def topic_node(keyword, node_id=100):
    return {"_id": node_id, "_labels": ["Topic"], "keyword": keyword}


def executed(mock_db, index=-1):
    """(query, params) of one execute() call on the mocked connection."""
    args = mock_db.execute.call_args_list[index][0]
    return args[0], (args[1] if len(args) > 1 else {})

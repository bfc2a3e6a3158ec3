"""
Schema relationship analysis used to enrich prompts
"""

from typing import Any, Dict, List, Optional

import networkx as nx

from ..database.models import SchemaModel


class SchemaAnalyzer:
    """Analyze a SchemaModel as a graph of table relationships"""

    def __init__(self, schema: SchemaModel):
        self.schema = schema
        self.relationship_graph = nx.MultiDiGraph()
        self._build_relationship_graph()

    def _build_relationship_graph(self):
        """Build a graph of table relationships"""
        for table in self.schema.tables:
            self.relationship_graph.add_node(table.name)

        for rel in self.schema.relationships:
            if rel['to_table'] not in self.relationship_graph:
                # FK into a table outside the indexed schema
                continue
            self.relationship_graph.add_edge(rel['from_table'], rel['to_table'], **rel)

    def detect_implicit_relationships(self) -> List[Dict[str, Any]]:
        """Detect implicit relationships based on naming conventions (<table>_id columns)"""
        implicit_rels = []
        names = {table.name.lower(): table.name for table in self.schema.tables}

        for table in self.schema.tables:
            declared = {fk.column for fk in table.foreign_keys}
            for column in table.columns:
                col_name = column.name.lower()
                if column.name in declared or not col_name.endswith('_id'):
                    continue
                stem = col_name[:-3]
                for candidate in (stem, stem + 's', stem + 'es'):
                    target = names.get(candidate)
                    if target and target != table.name:
                        target_table = self.schema.get_table(target)
                        to_column = target_table.primary_keys[0] if target_table.primary_keys else 'id'
                        implicit_rels.append({
                            'from_table': table.name,
                            'from_column': column.name,
                            'to_table': target,
                            'to_column': to_column,
                            'type': 'implicit_foreign_key',
                            'confidence': 0.8
                        })
                        break

        return implicit_rels

    def join_paths(self, limit: int = 50) -> List[str]:
        """Describe every declared join as from.col -> to.col"""
        paths = []
        for from_table, to_table, data in sorted(self.relationship_graph.edges(data=True),
                                                 key=lambda e: (e[0], e[1], e[2].get('from_column') or '')):
            target = to_table
            if data.get('to_column'):
                target += f".{data['to_column']}"
            paths.append(f"{from_table}.{data.get('from_column')} -> {target}")
            if len(paths) >= limit:
                break
        return paths

    def shortest_join_path(self, source: str, target: str) -> Optional[List[str]]:
        """Tables to walk through to join source with target, ignoring FK direction"""
        graph = self.relationship_graph.to_undirected(as_view=True)
        try:
            return nx.shortest_path(graph, source, target)
        except (nx.NetworkXNoPath, nx.NodeNotFound):
            return None

    def find_circular_references(self) -> List[List[str]]:
        return list(nx.simple_cycles(self.relationship_graph))

    def insertion_order(self) -> List[str]:
        """Referenced tables first; falls back to dependency count when there are cycles"""
        try:
            return list(reversed(list(nx.topological_sort(self.relationship_graph))))
        except nx.NetworkXUnfeasible:
            return sorted(self.relationship_graph.nodes,
                          key=lambda name: (self.relationship_graph.out_degree(name), name))

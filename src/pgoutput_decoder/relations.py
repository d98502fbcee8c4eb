"""Caller-side cache of Relation metadata.

Row messages only carry a relation id; resolving column names requires the
most recent Relation message for that id.  PostgreSQL resends Relation
messages on every new replication connection, so a cache should be created
per connection.
"""

from __future__ import annotations

from pgoutput_decoder.messages import LogicalReplicationMessage, Relation, Tuple


class UnknownRelationError(KeyError):
    """Raised when a row references a relation id that has not been seen."""

    def __init__(self, relation_id: int) -> None:
        super().__init__(relation_id)
        self.relation_id = relation_id

    def __str__(self) -> str:
        return f"No Relation message seen for relation id {self.relation_id}"


class RelationCache:
    """Latest Relation snapshot per relation id."""

    def __init__(self) -> None:
        self._relations: dict[int, Relation] = {}

    def __len__(self) -> int:
        return len(self._relations)

    def __contains__(self, relation_id: object) -> bool:
        return relation_id in self._relations

    def update(self, relation: Relation) -> None:
        """Store *relation*, superseding any earlier snapshot with the same id."""
        self._relations[relation.id] = relation

    def observe(self, message: LogicalReplicationMessage) -> None:
        """Track *message* if it is a Relation; other messages are ignored."""
        if isinstance(message, Relation):
            self.update(message)

    def get(self, relation_id: int) -> Relation:
        try:
            return self._relations[relation_id]
        except KeyError:
            raise UnknownRelationError(relation_id) from None

    def named_row(
        self, relation_id: int, row: tuple[Tuple, ...]
    ) -> dict[str, Tuple]:
        """Map each slot of *row* to its column name.

        Slots beyond the relation's known columns are named ``col_<index>``.
        """
        columns = self.get(relation_id).columns
        named: dict[str, Tuple] = {}
        for i, slot in enumerate(row):
            col_name = columns[i].name if i < len(columns) else f"col_{i}"
            named[col_name] = slot
        return named

    def clear(self) -> None:
        self._relations.clear()

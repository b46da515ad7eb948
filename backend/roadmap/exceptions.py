"""Engine and persistence errors."""


class RoadmapError(Exception):
    """Base error for the allocation engine."""


class NodeNotFoundError(RoadmapError):
    def __init__(self, node_id: str, node_type: str | None = None) -> None:
        self.node_id = node_id
        self.node_type = node_type
        label = node_type or "node"
        super().__init__(f"{label} {node_id} not found")


class NodeSuppressedError(NodeNotFoundError):
    """Raised when requests to a node are paused after repeated misses."""

    def __init__(self, node_id: str) -> None:
        super().__init__(node_id)
        self.args = (f"node {node_id} is suppressed after repeated not-found responses",)


class StoreWriteError(RoadmapError):
    def __init__(self, node_id: str, reason: str) -> None:
        self.node_id = node_id
        self.reason = reason
        super().__init__(f"write to {node_id} failed: {reason}")

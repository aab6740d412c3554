"""
Node metadata for pipeline introspection.

Each node declares which state fields it reads and writes, which services
it calls, and whether it talks to a reasoning model. The CLI uses this to
print a pipeline description; tests use it to check the wiring.

Usage:
    @dataclass
    class MyNode(BaseNode[MyState]):
        metadata: ClassVar[NodeMetadata] = NodeMetadata(
            inputs=["ad"],
            outputs=["creative_evidence"],
            services=["creative_evidence.gather"],
        )
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class NodeMetadata:
    """
    Attributes:
        inputs: State fields read by this node
        outputs: State fields written by this node
        services: Dependency methods called (e.g., "store.put")
        llm: Reasoning model used, if any
        llm_purpose: What the model does in this node
    """

    inputs: List[str] = field(default_factory=list)
    outputs: List[str] = field(default_factory=list)
    services: List[str] = field(default_factory=list)
    llm: Optional[str] = None
    llm_purpose: Optional[str] = None

    @property
    def uses_llm(self) -> bool:
        return self.llm is not None

    def to_dict(self) -> dict:
        return {
            "inputs": self.inputs,
            "outputs": self.outputs,
            "services": self.services,
            "llm": self.llm,
            "llm_purpose": self.llm_purpose,
            "uses_llm": self.uses_llm,
        }


def get_node_metadata(node_class) -> Optional[NodeMetadata]:
    return getattr(node_class, "metadata", None)


def describe_pipeline(node_classes: List) -> List[dict]:
    """Ordered node descriptions: name, docstring summary, and metadata."""
    described = []
    for node_class in node_classes:
        metadata = get_node_metadata(node_class)
        doc = (node_class.__doc__ or "").strip().splitlines()
        described.append({
            "node": node_class.__name__,
            "summary": doc[0] if doc else "",
            **(metadata.to_dict() if metadata else {}),
        })
    return described

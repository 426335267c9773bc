"""AI-assisted editing of object graphs.

The generator builds a prompt from the node's full context, asks the LLM for a
structured answer, and applies the answer to the workspace as ordinary
commands. The LLM never touches a snapshot directly.
"""

import uuid
from typing import Dict, List, Type

from loguru import logger

from canopy.commands import (
    AddConnection,
    AddNode,
    ExpandNode,
    RecordGeneration,
    UpdateGenerationRecord,
    UpdateNode,
)
from canopy.config import settings
from canopy.domain.base import now_ms
from canopy.domain.graph import (
    Connection,
    ConnectionMetadata,
    GraphNode,
    NodeMetadata,
    ObjectData,
    ObjectGenerationRecord,
)
from canopy.errors import GenerationFailed, PreconditionViolation
from canopy.graph.context import ContextAssembler
from canopy.graph.store import generate_node_id
from canopy.llms.base import ResponseT, StructuredLLM
from canopy.llms.schemas import ChildNames, ConnectionProposals, NodeDescription, NodeProperties
from canopy.prompt import (
    CHILDREN_PROMPT_TEMPLATE,
    CONNECTIONS_PROMPT_TEMPLATE,
    DESCRIPTION_PROMPT_TEMPLATE,
    PROPERTIES_PROMPT_TEMPLATE,
    get_prompt,
)
from canopy.workspace import Workspace

DEFAULT_REQUESTS = {
    "description": "Describe this node.",
    "properties": "List the key properties of this node.",
    "connections": "Connect this node to related nodes.",
}


class ObjectGenerator:
    def __init__(self, llm: StructuredLLM, model_id: str | None = None) -> None:
        self.llm = llm
        self.model_id = model_id

    def _object_data(self, workspace: Workspace, page_id: str, node_id: str) -> ObjectData:
        data = workspace.object_data(page_id)
        if data is None:
            raise PreconditionViolation(f"Object page {page_id} not found")
        if node_id not in data.nodes:
            raise PreconditionViolation(f"Node {node_id} not found on page {page_id}")
        return data

    def _ask(
        self,
        workspace: Workspace,
        page_id: str,
        prompt: str,
        response_model: Type[ResponseT],
        record_id: str | None = None,
    ) -> ResponseT:
        try:
            return self.llm.generate(prompt, response_model, self.model_id)
        except Exception as e:
            logger.error(f"Generation of {response_model.__name__} failed: {e}")
            raise GenerationFailed(
                f"Generation failed: {e}", snapshot=workspace.object_data(page_id), record_id=record_id
            ) from e

    def generate_children(
        self, workspace: Workspace, page_id: str, node_id: str, request: str | None = None
    ) -> List[str]:
        """Add AI-generated children to a node.

        A generation record is appended before the LLM is called, so a failed
        call still leaves an audit entry with no generated nodes.

        Args:
            workspace: Workspace holding the page
            page_id: Object page to edit
            node_id: Parent of the new children
            request: What to generate; defaults to `settings.default_children_prompt`

        Returns:
            IDs of the created children, in the order the LLM proposed them

        Raises:
            GenerationFailed: If the LLM call fails
        """
        data = self._object_data(workspace, page_id, node_id)
        request = (request or "").strip() or settings.default_children_prompt
        assembler = ContextAssembler(data)
        prompt = get_prompt(
            template=CHILDREN_PROMPT_TEMPLATE, assembler=assembler, node_id=node_id, request=request
        )

        record = ObjectGenerationRecord(
            id=str(uuid.uuid4()), parent_node_id=node_id, prompt=request, model_id=self.model_id
        )
        workspace.execute(RecordGeneration(page_id=page_id, record=record))
        response = self._ask(workspace, page_id, prompt, ChildNames, record.id)

        existing = {child.name.strip().lower() for child in assembler.direct_children(node_id)}
        created: List[str] = []
        for name in response.names:
            name = name.strip()
            if not name or name.lower() in existing:
                continue
            existing.add(name.lower())
            node = GraphNode(
                id=generate_node_id(),
                name=name,
                metadata=NodeMetadata(source="ai", ai_prompt=request),
            )
            result = workspace.execute(AddNode(page_id=page_id, node=node, parent_id=node_id))
            if result.applied:
                created.append(node.id)

        workspace.execute(
            UpdateGenerationRecord(page_id=page_id, record_id=record.id, generated_node_ids=created)
        )
        workspace.execute(ExpandNode(page_id=page_id, node_id=node_id))
        logger.info(f"Generated {len(created)} children for node {node_id}")
        return created

    def generate_description(
        self, workspace: Workspace, page_id: str, node_id: str, request: str | None = None
    ) -> str:
        data = self._object_data(workspace, page_id, node_id)
        request = (request or "").strip() or DEFAULT_REQUESTS["description"]
        prompt = get_prompt(
            template=DESCRIPTION_PROMPT_TEMPLATE,
            assembler=ContextAssembler(data),
            node_id=node_id,
            request=request,
        )
        response = self._ask(workspace, page_id, prompt, NodeDescription)
        description = response.description.strip()
        workspace.execute(
            UpdateNode(page_id=page_id, node_id=node_id, updates={"description": description})
        )
        return description

    def generate_properties(
        self, workspace: Workspace, page_id: str, node_id: str, request: str | None = None
    ) -> Dict[str, str]:
        """Add AI-proposed properties to a node without overwriting existing ones.

        Returns:
            The properties that were added
        """
        data = self._object_data(workspace, page_id, node_id)
        request = (request or "").strip() or DEFAULT_REQUESTS["properties"]
        prompt = get_prompt(
            template=PROPERTIES_PROMPT_TEMPLATE,
            assembler=ContextAssembler(data),
            node_id=node_id,
            request=request,
        )
        response = self._ask(workspace, page_id, prompt, NodeProperties)

        current = data.nodes[node_id].properties
        added = {key: value for key, value in response.as_dict().items() if key not in current}
        if added:
            workspace.execute(
                UpdateNode(
                    page_id=page_id, node_id=node_id, updates={"properties": {**current, **added}}
                )
            )
        return added

    def propose_connections(
        self, workspace: Workspace, page_id: str, node_id: str, request: str | None = None
    ) -> List[Connection]:
        """Add AI-proposed connections whose targets exist in the graph.

        Returns:
            The connections that were added
        """
        data = self._object_data(workspace, page_id, node_id)
        request = (request or "").strip() or DEFAULT_REQUESTS["connections"]
        prompt = get_prompt(
            template=CONNECTIONS_PROMPT_TEMPLATE,
            assembler=ContextAssembler(data),
            node_id=node_id,
            request=request,
        )
        response = self._ask(workspace, page_id, prompt, ConnectionProposals)

        added: List[Connection] = []
        for proposal in response.connections:
            if proposal.target_node_id not in data.nodes or proposal.target_node_id == node_id:
                logger.warning(
                    f"Dropping proposed {proposal.role} connection "
                    f"to invalid target {proposal.target_node_id}"
                )
                continue
            connection = Connection(
                node_id=proposal.target_node_id,
                role=proposal.role,
                description=proposal.description,
                strength=proposal.strength,
                metadata=ConnectionMetadata(created_at=now_ms(), source="ai", ai_prompt=request),
            )
            workspace.execute(AddConnection(page_id=page_id, node_id=node_id, connection=connection))
            added.append(connection)
        return added

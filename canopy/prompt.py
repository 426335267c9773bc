import json
from typing import List

from canopy.domain.graph import GraphNode
from canopy.graph.context import ContextAssembler

NODE_TEMPLATE = """# Current node
- Name: {name}
- Description: {description}
- Properties: {properties}

# Existing children
{children}"""

CHILDREN_PROMPT_TEMPLATE = """# Task
Generate names for new child nodes of the current node.

{context}
{node}

# Request
{request}

# Requirements
1. Only produce child node names
2. Do not repeat existing children
3. Follow the naming style of the siblings and the hierarchy above
4. Keep names short and unambiguous
"""

DESCRIPTION_PROMPT_TEMPLATE = """# Task
Write an accurate, concise description of the current node.

{context}
{node}

# Request
{request}

# Requirements
1. One or two sentences in plain language
2. Reflect the node's purpose within the whole hierarchy
"""

PROPERTIES_PROMPT_TEMPLATE = """# Task
Propose properties that characterise the current node.

{context}
{node}

# Request
{request}

# Requirements
1. Use short property names
2. Do not repeat properties the node already has
"""

CONNECTIONS_PROMPT_TEMPLATE = """# Task
Propose connections from the current node to other existing nodes.

{context}
{node}

# Candidate nodes
{candidates}

# Request
{request}

# Requirements
1. Only reference IDs from the candidate list
2. Use roles such as is-a, part-of, has-property, causes or located-at
"""


def get_children_info(children: List[GraphNode]) -> str:
    if not children:
        return "  No children yet"
    return "\n".join(
        f"  - {child.name}" + (f" ({child.description})" if child.description else "")
        for child in children
    )


def get_node_context(assembler: ContextAssembler, node: GraphNode) -> str:
    properties = json.dumps(node.properties, ensure_ascii=False, indent=2) if node.properties else "None"
    return NODE_TEMPLATE.format(
        name=node.name,
        description=node.description or "None",
        properties=properties,
        children=get_children_info(assembler.direct_children(node.id)),
    )


def get_candidates(assembler: ContextAssembler, node: GraphNode) -> str:
    return "\n".join(
        f"- ID: {candidate.id} | Name: {candidate.name}"
        for candidate in assembler.nodes.values()
        if candidate.id != node.id
    )


def get_prompt(*, template: str, assembler: ContextAssembler, node_id: str, request: str) -> str:
    """Fill a prompt template with the full context bundle of a node.

    Args:
        template: One of the module's prompt templates
        assembler: Context assembler over the current graph
        node_id: Node the prompt is about
        request: The user's request, or a default instruction

    Returns:
        The formatted prompt
    """
    node = assembler.nodes[node_id]
    return template.format(
        context=assembler.full_context_bundle(node_id),
        node=get_node_context(assembler, node),
        candidates=get_candidates(assembler, node),
        request=request,
    )

"""CLI for importing an object graph document into a page of the local workspace"""

import argparse
import json
from pathlib import Path

from loguru import logger

from canopy.commands import CreateObjectPage, ImportObject
from canopy.config import settings
from canopy.repositories.local import LocalWorkspaceRepository
from canopy.workspace import Workspace


def main(
    in_file: str,
    workspace_file: str,
    page_id: str | None,
    title: str | None,
    mode: str,
) -> None:
    repository = LocalWorkspaceRepository(Path(workspace_file))
    workspace = Workspace(repository.load())

    with open(in_file, "r") as f:
        document = json.load(f)

    if page_id is None:
        result = workspace.execute(
            CreateObjectPage(title=title or Path(in_file).stem, with_meta_relations=False)
        )
        page_id = result.created_id

    result = workspace.execute(ImportObject(page_id=page_id, document=document, mode=mode))
    if not result.applied:
        raise SystemExit(f"Import into page {page_id} failed: {result.reason}")

    repository.save(workspace.snapshot)
    logger.info(f"Imported {in_file} into page {page_id}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--in-file", type=str, required=True, help="Object graph JSON document")
    parser.add_argument(
        "--workspace",
        type=str,
        required=False,
        help="Local workspace file",
        default=settings.workspace_path,
    )
    parser.add_argument(
        "--page-id",
        type=str,
        required=False,
        help="Existing object page to import into; a new page is created when omitted",
    )
    parser.add_argument("--title", type=str, required=False, help="Title of the new page")
    parser.add_argument(
        "--mode", type=str, choices=["replace", "merge"], default="replace", help="Import mode"
    )

    args = parser.parse_args()

    main(
        in_file=args.in_file,
        workspace_file=args.workspace,
        page_id=args.page_id,
        title=args.title,
        mode=args.mode,
    )

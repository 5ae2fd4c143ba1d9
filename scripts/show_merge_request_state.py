"""Manual verification: show what the reconciler would see for a merge request.

Usage:
    GITLAB_TOKEN=glpat-... CI_SERVER_URL=https://gitlab.com CI_PROJECT_ID=123 \
        python scripts/show_merge_request_state.py 7

Lists the Coverity-managed discussions and the changed lines. Writes nothing.
"""

from __future__ import annotations

import sys

from coverity_gitlab.config import Config
from coverity_gitlab.gitlab.client import GitLabClient
from coverity_gitlab.gitlab.diffmap import DiffMap
from coverity_gitlab.reconcile.comments import is_present
from coverity_gitlab.reconcile.discussions import DiscussionIndex


def main() -> None:
    config = Config.load()

    # Allow merge request override from CLI arg
    iid = sys.argv[1] if len(sys.argv) > 1 else config.merge_request_iid

    if not config.gitlab_token or not config.server_url or not config.project_id:
        print("ERROR: Set GITLAB_TOKEN, CI_SERVER_URL and CI_PROJECT_ID")
        sys.exit(1)

    if not iid.isdigit():
        print("ERROR: Provide the merge request IID as argument or set CI_MERGE_REQUEST_IID")
        sys.exit(1)

    print(f"Connecting to project {config.project_id}, merge request !{iid}...")
    client = GitLabClient(
        url=config.server_url,
        token=config.gitlab_token,
        project_id=config.project_id,
        merge_request_iid=int(iid),
    )

    try:
        print("\n--- Coverity discussions ---")
        index = DiscussionIndex.from_discussions(client.list_discussions())
        for discussion in index.remaining():
            root = discussion.root
            lines = root.body.split("\n")
            merge_key = lines[1] if len(lines) > 1 else "?"
            where = (
                f"{root.position.new_path}:{root.position.new_line}"
                if root.position
                else "(general)"
            )
            state = "present" if is_present(root.body) else "resolved"
            print(f"  #{discussion.id} {merge_key} {where} [{state}]")

        print("\n--- Changed files ---")
        diff_map = DiffMap.from_diffs(client.list_diffs())
        for path in diff_map.paths():
            print(f"  {path}")

        print(f"\nSummary: {len(index)} discussions, {len(diff_map.paths())} changed files")

    finally:
        client.close()


if __name__ == "__main__":
    main()

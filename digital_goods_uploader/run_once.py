# digital_goods_uploader/run_once.py

from pathlib import Path
from typing import List, Optional

from digital_goods_uploader.core.product_schema import SubmissionReport
from digital_goods_uploader.core.state_store import StateStore
from digital_goods_uploader.pipeline.loader import draft_key, find_new_draft_folders
from digital_goods_uploader.pipeline.processor import process_pending_drafts
from digital_goods_uploader.platforms.store_api import StoreApiClient


def run_once(
    inbox: Path,
    client: StoreApiClient,
    state: StateStore,
    crop: bool = True,
) -> List[Optional[SubmissionReport]]:
    # Step 1: find new draft folders and mark them pending
    print("=" * 60)
    print("Step 1: discover new draft folders")
    print("=" * 60)
    new_folders = find_new_draft_folders(inbox, state)

    if new_folders:
        print(f"\n✨ {len(new_folders)} new folder(s), marking as pending:")
        for folder in new_folders:
            print(f"  - {folder.name}")
            state.mark_draft_status(draft_key(folder), folder.name, "pending")
    else:
        print("✅ No new folders.")

    # Step 2: submit everything pending
    print("\n" + "=" * 60)
    print("Step 2: submit pending drafts")
    print("=" * 60)
    return process_pending_drafts(client, state, crop=crop)

import argparse
import json

from app.orchestration.stock_sync.chunk_orchestrator import iter_sync_chunks
from app.utils.serialization import to_jsonable


# PYTHONPATH=backend python scripts/run_full_sync.py --offset 0 --limit 1500
# resumes from any offset: pass the last printed nextOffset after an interruption

def main():
    parser = argparse.ArgumentParser(description="Run the FINA -> Shopify stock sync chunk by chunk.")
    parser.add_argument("--offset", type=int, default=0)
    parser.add_argument("--limit", type=int, default=None)
    parser.add_argument("--max-chunks", type=int, default=None, help="stop after this many chunks")
    args = parser.parse_args()

    for index, response in enumerate(iter_sync_chunks(args.offset, args.limit), start=1):
        body = to_jsonable(response.to_dict(preview=0))
        print(json.dumps(body, ensure_ascii=False))
        if args.max_chunks and index >= args.max_chunks:
            print(f"stopped after {index} chunk(s); resume with --offset {response.next_offset}")
            break

if __name__ == "__main__":
    main()

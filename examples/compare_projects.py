"""Semantic diff: know exactly what changed between two project snapshots.

Usage:
    python examples/compare_projects.py old/project.json new/project.json
"""

import sys

from blockdiff import compare_projects, format_diff, read_project, to_json

old_doc = read_project(sys.argv[1])
new_doc = read_project(sys.argv[2])

diff = compare_projects(old_doc, new_doc)

print(format_diff(diff))
print()
print("Changes:")
for item in diff:
    where = item.location.block_path or item.fingerprint
    print(f"  {item.type.value} in {item.target_name} ({where})")

if "--json" in sys.argv:
    print(to_json(diff, indent=2))

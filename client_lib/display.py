import json

LAYER_NAMES = {
    "1": "Gateway",
    "2": "Load Balancer",
    "3": "Compute",
    "4": "Data",
    "5": "Foundation",
}


def show_summary(graph: dict):
    """Print resource, layer, flow path and cost summaries of a scan result."""
    metadata = graph.get("metadata", {})
    print(f"\n--- Scan Summary for {metadata.get('region')} ({graph.get('view_mode')}) ---")
    print(f"Scanned at: {metadata.get('scan_timestamp')}")
    print(f"Total resources: {metadata.get('total_resources', 0)}")
    print(f"Nodes: {len(graph.get('nodes', []))}, Links: {len(graph.get('links', []))}")

    print("\nResources by type:")
    for resource_type, count in sorted(metadata.get("resource_counts", {}).items()):
        if count:
            print(f"    {resource_type:<24} {count}")

    print("\nResources by layer:")
    for layer, count in sorted(metadata.get("layer_counts", {}).items()):
        print(f"    {layer}. {LAYER_NAMES.get(str(layer), 'Unknown'):<16} {count}")

    flow_paths = graph.get("flow_paths") or []
    if flow_paths:
        print(f"\nFlow paths ({len(flow_paths)}):")
        for path in flow_paths:
            print(f"    [{path.get('criticality', '').upper()}] {path.get('name')} ({len(path.get('node_ids', []))} hops, {path.get('flow_type')})")

    cost_summary = graph.get("cost_summary")
    if cost_summary:
        source = "live pricing" if graph.get("pricing_data") else "estimates"
        print(f"\nEstimated monthly cost ({source}): ${cost_summary.get('total', 0):,.2f}")
        for item in cost_summary.get("breakdown", []):
            print(f"    {item['category']:<14} ${item['amount']:>10,.2f}  ({item['percentage']:.1f}%)")


def write_graph(graph: dict, path: str):
    with open(path, "w") as f:
        json.dump(graph, f, indent=2)
    print(f"\nGraph written to {path}")

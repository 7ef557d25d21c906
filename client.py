import argparse
import sys

# Import functions from the client_lib package
from client_lib import scan, display


def main():
    parser = argparse.ArgumentParser(description="AWS Infrastructure Visualizer API Client.")
    parser.add_argument("--region", help="AWS region to scan (defaults to AWS_REGION / AWS_DEFAULT_REGION)")
    parser.add_argument("--services", nargs="+", help="Only run these scanners, e.g. --services vpc subnet ec2-instance")
    parser.add_argument("--view", choices=["business-flow", "infrastructure"], default="business-flow", help="Graph view to request (default: business-flow)")
    parser.add_argument("--pricing", dest="include_pricing", action="store_true", default=None, help="Request live AWS Pricing API lookups")
    parser.add_argument("--no-pricing", dest="include_pricing", action="store_false", help="Use static cost estimates only")
    parser.add_argument("--list-regions", action="store_true", help="Print the regions offered by the API, then exit.")
    parser.add_argument("--output", help="Write the returned graph JSON to this file")
    args = parser.parse_args()

    health = scan.check_health()
    if not health:
        print("\nExiting - API is not reachable.")
        sys.exit(1)
    print(f"API is {health.get('status')} (version {health.get('version')})")

    if args.list_regions:
        for region in scan.list_regions():
            print(f"    {region['code']:<16} {region['name']}")
        return

    graph = scan.run_scan(
        region=args.region,
        services=args.services,
        view_mode=args.view,
        include_pricing=args.include_pricing,
    )
    if not graph:
        print("\nExiting due to scan failure.")
        sys.exit(1)

    display.show_summary(graph)
    if args.output:
        display.write_graph(graph, args.output)


if __name__ == "__main__":
    main()

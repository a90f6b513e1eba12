"""
HTTP benchmark for the post feed API.

Two phases:
1. Latency of the read endpoints (list, detail, metrics, health).
2. Contention: N users like the same post at once.  Every like must land;
   the retry count shows up as extra statements in ``X-Query-Count``.
"""
import asyncio
import argparse
import time
import statistics
import uuid

import httpx

from postfeed.auth import create_access_token


async def _create_user(client: httpx.AsyncClient, base_url: str, suffix: str) -> int:
    resp = await client.post(f"{base_url}/api/users", json={
        "username": f"bench_{suffix}",
        "email": f"bench_{suffix}@example.com",
    })
    resp.raise_for_status()
    return resp.json()["id"]


async def benchmark_endpoint(client, base_url, name, path, headers, iterations=50):
    times = []
    query_counts = []
    errors = 0

    for _ in range(iterations):
        try:
            start = time.perf_counter()
            resp = await client.get(f"{base_url}{path}", headers=headers)
            elapsed = (time.perf_counter() - start) * 1000
        except httpx.HTTPError:
            errors += 1
            continue

        if resp.status_code != 200:
            errors += 1
            continue
        times.append(elapsed)
        query_counts.append(int(resp.headers.get("x-query-count", 0)))

    if not times:
        return {"name": name, "error": f"All {iterations} requests failed"}

    ordered = sorted(times)
    return {
        "name": name,
        "avg_ms": round(statistics.mean(times), 2),
        "p50_ms": round(ordered[len(ordered) // 2], 2),
        "p95_ms": round(ordered[int(len(ordered) * 0.95)], 2),
        "queries": round(statistics.mean(query_counts), 1),
        "errors": errors,
    }


async def run_contention(client, base_url, likers: int):
    run = uuid.uuid4().hex[:8]
    author_id = await _create_user(client, base_url, f"{run}_author")
    author = {"x-auth-token": create_access_token(author_id)}
    resp = await client.post(f"{base_url}/api/posts", json={"text": "contention"}, headers=author)
    resp.raise_for_status()
    post_id = resp.json()["id"]

    tokens = []
    for i in range(likers):
        user_id = await _create_user(client, base_url, f"{run}_{i}")
        tokens.append(create_access_token(user_id))

    async def like(token):
        return await client.put(f"{base_url}/api/posts/like/{post_id}", headers={"x-auth-token": token})

    start = time.perf_counter()
    responses = await asyncio.gather(*(like(t) for t in tokens))
    elapsed = (time.perf_counter() - start) * 1000

    failed = [r for r in responses if r.status_code != 200]
    statements = sum(int(r.headers.get("x-query-count", 0)) for r in responses)
    final = (await client.get(f"{base_url}/api/posts/{post_id}", headers=author)).json()

    print(f"  {likers} concurrent likes in {elapsed:.1f}ms, {statements} store statements")
    print(f"  failed requests: {len(failed)} (503 = contention retries exhausted)")
    print(f"  likes stored: {len(final['likes'])} / {likers - len(failed)} accepted")
    if len(final["likes"]) != likers - len(failed):
        print("  LOST UPDATE DETECTED")


async def run_benchmark(base_url: str, iterations: int, likers: int):
    print("=" * 72)
    print(f"Post Feed API Benchmark: {iterations} iterations per endpoint")
    print(f"Target: {base_url}")
    print("=" * 72)

    async with httpx.AsyncClient(timeout=30) as client:
        try:
            resp = await client.get(f"{base_url}/health")
        except httpx.HTTPError as exc:
            print(f"ERROR: Cannot connect to {base_url}: {exc}")
            return
        if resp.status_code != 200:
            print(f"ERROR: Health check failed ({resp.status_code})")
            return

        user_id = await _create_user(client, base_url, uuid.uuid4().hex[:8])
        headers = {"x-auth-token": create_access_token(user_id)}
        resp = await client.post(f"{base_url}/api/posts", json={"text": "benchmark"}, headers=headers)
        resp.raise_for_status()
        post_id = resp.json()["id"]

        endpoints = [
            ("GET /api/posts", "/api/posts"),
            ("GET /api/posts/{id}", f"/api/posts/{post_id}"),
            ("GET /api/metrics", "/api/metrics"),
            ("GET /health", "/health"),
        ]

        print(f"\n{'Endpoint':<30} {'Avg':>9} {'P50':>9} {'P95':>9} {'Queries':>8} {'Err':>4}")
        print("-" * 72)
        for name, path in endpoints:
            result = await benchmark_endpoint(client, base_url, name, path, headers, iterations)
            if "error" in result:
                print(f"{result['name']:<30} {'ERROR':>9}")
                continue
            print(
                f"{result['name']:<30} "
                f"{result['avg_ms']:>7.1f}ms "
                f"{result['p50_ms']:>7.1f}ms "
                f"{result['p95_ms']:>7.1f}ms "
                f"{result['queries']:>8} "
                f"{result['errors']:>4}"
            )
        print("-" * 72)

        print("\nContention")
        await run_contention(client, base_url, likers)

    print("\nBenchmark complete.")


def main():
    parser = argparse.ArgumentParser(description="Benchmark the post feed API")
    parser.add_argument("-n", "--iterations", type=int, default=50, help="Iterations per endpoint")
    parser.add_argument("--likers", type=int, default=20, help="Concurrent likers for the contention run")
    parser.add_argument("--base-url", default="http://localhost:8000", help="API base URL")
    args = parser.parse_args()
    asyncio.run(run_benchmark(args.base_url, args.iterations, args.likers))


if __name__ == "__main__":
    main()

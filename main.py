from time import sleep, perf_counter

from collectkit import Collection, LazyCollection, collect, configure_logging

configure_logging()


def expensive_transform(x):
    # Simulate a costly step so laziness is visible
    print(f"  computing f({x}) ...")
    sleep(0.2)
    return x * x


print("\n--- Demo: eager collection ---")
staff = collect([
    {"name": "Akmal", "department": "IT"},
    {"name": "Muhammad", "department": "IT"},
    {"name": "Pridianto", "department": "HR"},
])
for department, members in staff.group_by("department"):
    print(f"  {department}: {members.pluck('name').join(', ', ' and ')}")

scores = Collection({"akmal": 100, "budi": 90, "joko": 80})
passed, failed = scores.partition(lambda score: score >= 90)
print(f"  passed={passed.all()} failed={failed.all()}")
print(f"  sorted desc: {collect([2, 5, 4, 3, 7, 6, 8, 9, 1]).sort_desc().to_list()}")

print("\n--- Demo: laziness (no work until iterated) ---")
pipeline = (
    LazyCollection.count_up(1)      # infinite source
    .map(expensive_transform)
    .filter(lambda v: v % 2 == 0)
    .skip(3)
    .take(5)
)
print("Constructed pipeline. No output yet (nothing computed).")
t0 = perf_counter()
out = pipeline.to_list()   # computes only what's needed for 5 items
t1 = perf_counter()
print(f"Result: {out}")
print(f"Time: {t1 - t0:.2f}s\n")

print("--- Demo: chunking ---")
chunked = (
    LazyCollection(range(1, 12))
    .map(expensive_transform)
    .chunk(4)
    .take(2)  # only the first two chunks -> only the first 8 items computed
)
for _, chunk in chunked:
    print("  chunk:", chunk.to_list())
print()

print("--- Demo: remember (first pass computes; second pass reuses) ---")
remembered = (
    LazyCollection(range(1, 12))
    .map(expensive_transform)
    .filter(lambda v: v % 5 != 0)
    .remember()
)
t0 = perf_counter()
_ = remembered.to_list()
t1 = perf_counter()
print(f"First pass time: {t1 - t0:.2f}s")
t0 = perf_counter()
_ = remembered.to_list()
t1 = perf_counter()
print(f"Second pass time: {t1 - t0:.4f}s")

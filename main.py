from time import sleep, perf_counter
from itertools import count as naturals
from stream import Stream, END

def expensive_transform(x):
    # Simulate a costly step so laziness is visible
    print(f"  computing f({x}) ...")
    sleep(0.2)
    return x * x

print("\n--- Demo: laziness (no work until pulled) ---")
pipeline = (
    Stream.of(range(1, 10_000))
    .map(expensive_transform)
    .filter(lambda v: v % 2 == 0)
    .skip(3)
    .limit(5)
)

print("Constructed pipeline. No output yet (nothing computed).")
print("\nCollecting (computes only what's needed for 5 items):")
t0 = perf_counter()
out = pipeline.collect()
t1 = perf_counter()
print(f"Result: {out}")
print(f"Time: {t1 - t0:.2f}s\n")

print("--- Demo: infinite source, stopped by take_while ---")
small_squares = Stream.of(naturals(1)).map(lambda x: x * x).take_while(lambda v: v < 50)
print(f"Squares below 50: {small_squares.collect()}\n")

print("--- Demo: zip ---")
names = Stream.of(["one", "two", "three"])
numbers = Stream.of(naturals(1))
print(f"Zipped: {Stream.zip([numbers, names]).collect()}\n")

print("--- Demo: flat_map ---")
print(f"Flattened: {Stream.of([1, 2, 3, 4]).flat_map(lambda x: Stream.of([x, x * 2])).collect()}\n")

print("--- Demo: reduce ---")
calls = []
def add(acc, x):
    calls.append((acc, x))
    return acc + x

print(f"Sum without initial: {Stream.of([1, 2, 3, 4]).reduce(add)} via {calls}")
calls.clear()
print(f"Sum with initial -1: {Stream.of([1, 2, 3, 4]).reduce(add, -1)} via {calls}")
print(f"Empty reduce gives END: {Stream.of([]).reduce(add) is END}\n")

print("--- Demo: chunking ---")
batched = (
    Stream.of(range(1, 12))
    .map(expensive_transform)
    .chunk(4)
    .limit(2)  # only first two chunks -> only first 8 items computed
)
for b in batched:
    print("  chunk:", b)
print()

Q64_RESOLUTION = 64
Q64 = 1 << Q64_RESOLUTION

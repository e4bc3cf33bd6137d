"""ReBooked Living backend."""

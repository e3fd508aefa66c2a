"""Document and script parsing front ends."""

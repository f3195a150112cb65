"""Fetch genomic scaffolds from indexed FASTA stores as wrapped FASTA records."""

__version__ = "0.1.0"

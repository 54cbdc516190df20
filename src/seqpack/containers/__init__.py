"""
Sequence containers: the packed copy-on-write ``Seq`` and the integer-packed ``Kmer``.
"""

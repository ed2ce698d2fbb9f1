#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
PhaseWeaver v0.1.0

Genotype Sources — per-contig streams of variant records carrying one
genotype string per sample. The VCF/BCF reader is built on pysam; an
in-memory source serves tests and embedding callers.

Author: PhaseWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from __future__ import annotations
import hashlib
import logging
from collections import defaultdict
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Protocol, Sequence, Tuple

import pysam

from ..threading_core.data_structures import VariantRecord
from ..threading_core.thread_extraction import GenotypeSourceError

logger = logging.getLogger(__name__)


class GenotypeSource(Protocol):
    """
    Minimum interface the threading engine needs from a variant file.

    variants(contig) must restart at the first record of the contig on every
    call, and yield nothing for contigs the source does not know.
    """

    @property
    def samples(self) -> List[str]:
        ...

    def variants(self, contig: str) -> Iterator[VariantRecord]:
        ...


def make_variant_id(contig: str, position: int, ref: str, alts: Sequence[str], record_id: Optional[str] = None) -> str:
    """
    Identifier linking a variant to its _alt_<id>_<n> allele paths.

    The record's own ID is used when present; otherwise the first 8 hex
    digits of the SHA-1 of contig, 1-based position, ref and alts.
    """
    if record_id and record_id != '.':
        return record_id
    variant_string = f"{contig}{position}{ref}{''.join(alts)}"
    return hashlib.sha1(variant_string.encode('utf-8')).hexdigest()[:8]


def format_genotype(alleles: Optional[Tuple[Optional[int], ...]], phased: bool) -> str:
    """
    Rebuild a VCF GT string from pysam's allele tuple.

    (0, 1) phased -> '0|1'; unphased -> '0/1'; (1,) -> '1'; None alleles
    become '.'. A sample without GT yields ''.
    """
    if not alleles:
        return ""
    separator = '|' if phased else '/'
    return separator.join('.' if allele is None else str(allele) for allele in alleles)


# ============================================================================
#                           VCF / BCF (pysam)
# ============================================================================

class VcfGenotypeSource:
    """
    Genotype source over a VCF or BCF file.

    Indexed files are repositioned with fetch(contig); unindexed files are
    reopened, rescanned from the top and filtered by contig.
    """

    def __init__(self, vcf_path: str | Path):
        self.vcf_path = Path(vcf_path)
        if not self.vcf_path.exists():
            raise GenotypeSourceError(f"could not open {self.vcf_path}: file not found")
        try:
            self._vcf = pysam.VariantFile(str(self.vcf_path))
        except (OSError, ValueError) as e:
            raise GenotypeSourceError(f"could not open {self.vcf_path}: {e}") from e

        self._samples = list(self._vcf.header.samples)
        self._indexed = getattr(self._vcf, 'index', None) is not None
        logger.info(f"Opened variant file {self.vcf_path}")
        logger.debug(f"  Samples: {len(self._samples)}, indexed: {self._indexed}")

    @property
    def samples(self) -> List[str]:
        return self._samples

    def _records(self, contig: str) -> Iterator:
        if self._indexed:
            if contig not in self._vcf.header.contigs:
                return
            try:
                records = self._vcf.fetch(contig)
            except ValueError:
                # Contig declared in the header but absent from the index
                return
            yield from records
            return

        # Plain and unindexed files are read again from the top
        with pysam.VariantFile(str(self.vcf_path)) as vcf:
            for record in vcf:
                if record.chrom == contig:
                    yield record

    def variants(self, contig: str) -> Iterator[VariantRecord]:
        for record in self._records(contig):
            alts = list(record.alts or ())
            genotypes = []
            for sample_name in self._samples:
                call = record.samples[sample_name]
                alleles = call.get('GT')
                genotypes.append(format_genotype(alleles, call.phased))
            yield VariantRecord(
                contig=record.chrom,
                position=record.start,
                variant_id=make_variant_id(record.chrom, record.pos, record.ref, alts, record.id),
                ref=record.ref,
                alts=alts,
                genotypes=genotypes,
            )

    def close(self):
        self._vcf.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


# ============================================================================
#                           IN-MEMORY
# ============================================================================

class InMemoryGenotypeSource:
    """Genotype source over VariantRecords held in memory."""

    def __init__(self, samples: Sequence[str], records: Iterable[VariantRecord] = ()):
        self._samples = list(samples)
        self._by_contig: Dict[str, List[VariantRecord]] = defaultdict(list)
        for record in records:
            self.add(record)

    @property
    def samples(self) -> List[str]:
        return self._samples

    def add(self, record: VariantRecord):
        if len(record.genotypes) > len(self._samples):
            raise ValueError(
                f"Variant {record.variant_id} has {len(record.genotypes)} genotypes "
                f"for {len(self._samples)} samples"
            )
        self._by_contig[record.contig].append(record)
        self._by_contig[record.contig].sort(key=lambda r: r.position)

    def add_variant(
        self,
        contig: str,
        position: int,
        ref: str,
        alts: Sequence[str],
        genotypes: Sequence[str],
        variant_id: Optional[str] = None,
    ) -> VariantRecord:
        """Add a variant at a 0-based position, deriving its id if needed."""
        record = VariantRecord(
            contig=contig,
            position=position,
            variant_id=make_variant_id(contig, position + 1, ref, alts, variant_id),
            ref=ref,
            alts=list(alts),
            genotypes=list(genotypes),
        )
        self.add(record)
        return record

    def contigs(self) -> List[str]:
        return list(self._by_contig)

    def variants(self, contig: str) -> Iterator[VariantRecord]:
        return iter(list(self._by_contig.get(contig, ())))


# PhaseWeaver v0.1.0
# Any usage is subject to this software's license.

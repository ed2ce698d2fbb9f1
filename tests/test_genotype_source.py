#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Tests for genotype sources (pysam VCF reader and in-memory source).
"""

import pysam
import pytest

from phaseweaver.threading_core import GenotypeSourceError, VariantRecord
from phaseweaver.io_utils import (
    InMemoryGenotypeSource,
    VcfGenotypeSource,
    format_genotype,
    make_variant_id,
)


VCF_TEXT = """##fileformat=VCFv4.2
##contig=<ID=chr1,length=15>
##contig=<ID=chr2,length=10>
##FORMAT=<ID=GT,Number=1,Type=String,Description="Genotype">
#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO\tFORMAT\ts0\ts1\ts2
chr1\t4\ta\tC\tG\t.\tPASS\t.\tGT\t0|1\t1/1\t.|.
chr1\t11\t.\tA\tT,AG\t.\tPASS\t.\tGT\t2|0\t1\t.
chr2\t3\tz\tG\t<DEL>\t.\tPASS\t.\tGT\t0|1\t0|0\t1|1
"""


@pytest.fixture
def vcf_file(temp_output_dir):
    path = temp_output_dir / "calls.vcf"
    path.write_text(VCF_TEXT)
    return path


@pytest.fixture
def indexed_vcf_file(vcf_file):
    compressed = vcf_file.with_suffix(".vcf.gz")
    pysam.tabix_compress(str(vcf_file), str(compressed), force=True)
    pysam.tabix_index(str(compressed), preset='vcf', force=True)
    return compressed


class TestHelpers:

    def test_variant_id_prefers_record_id(self):
        assert make_variant_id('chr1', 4, 'C', ['G'], 'rs1') == 'rs1'

    def test_variant_id_hash(self):
        derived = make_variant_id('chr1', 11, 'A', ['T', 'AG'])
        assert len(derived) == 8
        assert derived == make_variant_id('chr1', 11, 'A', ['T', 'AG'], '.')
        assert derived != make_variant_id('chr1', 12, 'A', ['T', 'AG'])

    @pytest.mark.parametrize("alleles, phased, expected", [
        ((0, 1), True, "0|1"),
        ((1, 1), False, "1/1"),
        ((None, None), True, ".|."),
        ((1,), True, "1"),
        ((None,), False, "."),
        (None, False, ""),
        ((), True, ""),
    ])
    def test_format_genotype(self, alleles, phased, expected):
        assert format_genotype(alleles, phased) == expected


class TestVcfGenotypeSource:
    """pysam-backed VCF reading."""

    def test_samples(self, vcf_file):
        with VcfGenotypeSource(vcf_file) as source:
            assert source.samples == ['s0', 's1', 's2']

    def test_variants(self, vcf_file):
        with VcfGenotypeSource(vcf_file) as source:
            records = list(source.variants('chr1'))

        assert [r.position for r in records] == [3, 10]
        first, second = records
        assert first.variant_id == 'a'
        assert first.ref == 'C'
        assert first.alts == ['G']
        assert first.genotypes == ['0|1', '1/1', '.|.']
        assert second.variant_id == make_variant_id('chr1', 11, 'A', ['T', 'AG'])
        assert second.genotypes == ['2|0', '1', '.']

    def test_rescan_restarts(self, vcf_file):
        with VcfGenotypeSource(vcf_file) as source:
            assert len(list(source.variants('chr1'))) == 2
            assert len(list(source.variants('chr2'))) == 1
            assert len(list(source.variants('chr1'))) == 2

    def test_unknown_contig(self, vcf_file):
        with VcfGenotypeSource(vcf_file) as source:
            assert list(source.variants('chrX')) == []

    def test_symbolic_allele_is_not_dna(self, vcf_file):
        with VcfGenotypeSource(vcf_file) as source:
            record = next(source.variants('chr2'))
        assert not record.is_dna()

    def test_missing_file(self, temp_output_dir):
        with pytest.raises(GenotypeSourceError):
            VcfGenotypeSource(temp_output_dir / "absent.vcf")


class TestIndexedVcfGenotypeSource:
    """bgzipped, tabix-indexed input is repositioned with fetch."""

    def test_index_detected(self, indexed_vcf_file):
        with VcfGenotypeSource(indexed_vcf_file) as source:
            assert source._indexed

    def test_rescans_are_identical(self, indexed_vcf_file):
        with VcfGenotypeSource(indexed_vcf_file) as source:
            first = [(r.variant_id, r.genotypes) for r in source.variants('chr1')]
            assert [(r.variant_id, r.genotypes) for r in source.variants('chr2')] == [
                ('z', ['0|1', '0|0', '1|1']),
            ]
            second = [(r.variant_id, r.genotypes) for r in source.variants('chr1')]

        assert first == second
        assert first == [
            ('a', ['0|1', '1/1', '.|.']),
            (make_variant_id('chr1', 11, 'A', ['T', 'AG']), ['2|0', '1', '.']),
        ]

    def test_unknown_contig(self, indexed_vcf_file):
        with VcfGenotypeSource(indexed_vcf_file) as source:
            assert list(source.variants('chrX')) == []


class TestInMemoryGenotypeSource:

    def test_sorted_by_position(self):
        source = InMemoryGenotypeSource(['s0'])
        source.add_variant('chr1', 9, 'A', ['C'], ['0|1'], variant_id='late')
        source.add_variant('chr1', 2, 'A', ['C'], ['0|1'], variant_id='early')
        assert [r.variant_id for r in source.variants('chr1')] == ['early', 'late']

    def test_derived_id_uses_one_based_position(self):
        source = InMemoryGenotypeSource(['s0'])
        record = source.add_variant('chr1', 10, 'A', ['T', 'AG'], ['1'])
        assert record.variant_id == make_variant_id('chr1', 11, 'A', ['T', 'AG'])

    def test_contigs(self):
        source = InMemoryGenotypeSource(['s0'], [
            VariantRecord('chr2', 1, 'x', 'A', ['C'], ['0|1']),
            VariantRecord('chr1', 1, 'y', 'A', ['C'], ['0|1']),
        ])
        assert source.contigs() == ['chr2', 'chr1']
        assert list(source.variants('chr3')) == []

    def test_too_many_genotypes(self):
        source = InMemoryGenotypeSource(['s0'])
        with pytest.raises(ValueError):
            source.add_variant('chr1', 1, 'A', ['C'], ['0|1', '1|1'])

    def test_missing_genotype_is_empty(self):
        record = VariantRecord('chr1', 1, 'x', 'A', ['C'], ['0|1'])
        assert record.genotype(0) == '0|1'
        assert record.genotype(3) == ''

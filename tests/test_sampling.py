import pytest

from splitforest.sampling import RandomSampler, SamplingOptions


def test_options_group_samples_by_first_appearance():
    options = SamplingOptions(2, [5, 5, 7, 5, 9])
    assert options.clusters == [[0, 1, 3], [2], [4]]
    assert options.samples_per_cluster == 2


def test_default_options_have_no_clusters():
    options = SamplingOptions()
    assert options.clusters == []
    assert options.samples_per_cluster == 0


def test_sample_clusters_without_clustering_draws_sample_ids():
    sampler = RandomSampler(42)
    result = sampler.sample_clusters(10, 0.5)
    assert len(result) == 5
    assert len(set(result)) == len(result)
    assert set(result) <= set(range(10))


def test_sample_clusters_with_clustering_draws_cluster_ids():
    options = SamplingOptions(1, [0, 0, 1, 1, 2, 2, 3, 3])
    sampler = RandomSampler(3, options)
    result = sampler.sample_clusters(8, 1.0)
    assert sorted(result) == list(range(len(options.clusters)))


def test_same_seed_is_reproducible():
    first = RandomSampler(7).subsample(list(range(50)), 0.3)
    second = RandomSampler(7).subsample(list(range(50)), 0.3)
    assert first == second


def test_subsample_full_fraction_is_permutation():
    samples = [4, 8, 15, 16, 23, 42]
    result = RandomSampler(1).subsample(samples, 1.0)
    assert sorted(result) == sorted(samples)


def test_subsample_is_distinct_subset():
    samples = list(range(20, 40))
    result = RandomSampler(5).subsample(samples, 0.25)
    assert set(result) <= set(samples)
    assert len(set(result)) == len(result)
    assert 0 < len(result) < len(samples)


def test_subsample_with_oob_partitions_samples():
    samples = list(range(100, 117))
    inbag, oob = RandomSampler(11).subsample_with_oob(samples, 0.4)
    assert sorted(inbag + oob) == samples
    assert not set(inbag) & set(oob)
    assert len(inbag) > 0 and len(oob) > 0


def test_subsample_with_oob_full_fraction_leaves_no_oob():
    samples = [3, 1, 2]
    inbag, oob = RandomSampler(0).subsample_with_oob(samples, 1.0)
    assert sorted(inbag) == sorted(samples)
    assert oob == []


def test_subsample_with_size_returns_requested_size():
    samples = list(range(30))
    result = RandomSampler(2).subsample_with_size(samples, 7)
    assert len(result) == 7
    assert set(result) <= set(samples)
    assert len(set(result)) == 7


def test_subsample_with_size_too_large_raises():
    with pytest.raises(ValueError):
        RandomSampler(2).subsample_with_size([1, 2, 3], 4)


def test_sample_from_clusters_without_clustering_returns_input():
    clusters = [9, 3, 5]
    assert RandomSampler(0).sample_from_clusters(clusters) == clusters


def test_sample_from_clusters_takes_whole_small_clusters():
    options = SamplingOptions(10, [0, 1, 0, 1, 2])
    sampler = RandomSampler(0, options)
    result = sampler.sample_from_clusters([0, 1, 2])
    assert sorted(result) == list(range(5))


def test_sample_from_clusters_limits_large_clusters():
    labels = [0] * 6 + [1] * 2 + [2] * 5
    options = SamplingOptions(3, labels)
    sampler = RandomSampler(9, options)
    result = sampler.sample_from_clusters([0, 1, 2])
    assert len(set(result)) == len(result)
    for cluster, members in enumerate(options.clusters):
        picked = [s for s in result if s in members]
        assert len(picked) == min(len(members), options.samples_per_cluster)
        assert all(labels[s] == cluster for s in picked)


def test_get_samples_in_clusters_concatenates_in_order():
    options = SamplingOptions(1, [0, 1, 2, 0, 1, 2])
    sampler = RandomSampler(0, options)
    result = sampler.get_samples_in_clusters([2, 0])
    assert result == options.clusters[2] + options.clusters[0]


def test_get_samples_in_clusters_without_clustering_returns_input():
    assert RandomSampler(0).get_samples_in_clusters([4, 2]) == [4, 2]


@pytest.mark.parametrize("max_value,num_samples", [(100, 3), (10, 5), (20, 17)])
def test_draw_yields_distinct_values_outside_skip(max_value, num_samples):
    skip = {0, 4, 7}
    result = RandomSampler(13).draw(max_value, skip, num_samples)
    assert len(result) == num_samples
    assert len(set(result)) == num_samples
    assert not set(result) & skip
    assert all(0 <= value < max_value for value in result)


def test_draw_everything_available():
    skip = {1, 3}
    result = RandomSampler(4).draw(6, skip, 4)
    assert sorted(result) == sorted(set(range(6)) - skip)


def test_draw_too_many_raises():
    with pytest.raises(ValueError):
        RandomSampler(0).draw(5, {0}, 5)


def test_draw_skip_out_of_range_raises():
    with pytest.raises(ValueError):
        RandomSampler(0).draw(5, {5}, 1)


def test_poisson_with_zero_mean_is_zero():
    assert RandomSampler(0).sample_poisson(0) == 0


def test_poisson_draws_are_non_negative():
    sampler = RandomSampler(21)
    draws = [sampler.sample_poisson(5) for _ in range(50)]
    assert min(draws) >= 0
    assert max(draws) > 0
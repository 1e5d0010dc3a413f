"""
Unit tests for transposed-convolution shape inference.
"""

import logging

import pytest

from rootlite.sofie import AutoPad, ConvTransposeAttributes, infer_conv_transpose_shape


class TestOutputShape:
    """Output size formula."""

    def test_default_attributes_2d(self) -> None:
        """3x3 kernel, stride 1, no padding grows each side by 2."""
        shape, resolved = infer_conv_transpose_shape([1, 3, 8, 8], [3, 2, 3, 3])
        assert shape == [1, 2, 10, 10]
        assert resolved.strides == (1, 1)
        assert resolved.dilations == (1, 1)
        assert resolved.pads == (0, 0, 0, 0)

    def test_stride_padding_output_padding(self) -> None:
        """out = s*(in-1) + output_padding + (k-1)*d + 1 - pads."""
        attrs = ConvTransposeAttributes(strides=[2, 2], pads=[1, 1, 1, 1], output_padding=[1, 1])
        shape, _ = infer_conv_transpose_shape([2, 4, 5, 5], [4, 3, 3, 3], attrs)
        # 2*4 + 1 + 2 + 1 - 2 = 10
        assert shape == [2, 3, 10, 10]

    def test_dilation_1d(self) -> None:
        attrs = ConvTransposeAttributes(dilations=[3])
        shape, _ = infer_conv_transpose_shape([1, 1, 7], [1, 1, 3])
        assert shape == [1, 1, 9]
        shape, _ = infer_conv_transpose_shape([1, 1, 7], [1, 1, 3], attrs)
        assert shape == [1, 1, 13]

    def test_group_multiplies_output_channels(self) -> None:
        attrs = ConvTransposeAttributes(group=2)
        shape, resolved = infer_conv_transpose_shape([1, 4, 3, 3, 3], [4, 3, 2, 2, 2], attrs)
        assert shape == [1, 6, 4, 4, 4]
        assert resolved.group == 2
        assert resolved.spatial_rank == 3

    def test_inference_is_idempotent(self) -> None:
        """Same inputs give the same shape on repeated calls."""
        attrs = ConvTransposeAttributes(strides=[2, 1], pads=[0, 1, 0, 1])
        first = infer_conv_transpose_shape([1, 2, 4, 6], [2, 2, 3, 3], attrs)
        second = infer_conv_transpose_shape([1, 2, 4, 6], [2, 2, 3, 3], attrs)
        assert first == second


class TestAutoPad:
    """Padding derived from a target output size."""

    def test_output_shape_attribute(self) -> None:
        """Padding is chosen so the requested spatial size is produced."""
        attrs = ConvTransposeAttributes(strides=[2, 2], output_shape=[8, 8])
        shape, resolved = infer_conv_transpose_shape([1, 1, 4, 4], [1, 1, 4, 4], attrs)
        assert shape == [1, 1, 8, 8]
        assert resolved.pads == (1, 1, 1, 1)

    def test_output_shape_with_batch_and_channels(self) -> None:
        attrs = ConvTransposeAttributes(strides=[2], output_shape=[1, 1, 8])
        shape, _ = infer_conv_transpose_shape([1, 1, 4], [1, 1, 4], attrs)
        assert shape == [1, 1, 8]

    def test_same_upper_targets_input_times_stride(self) -> None:
        attrs = ConvTransposeAttributes(strides=[2, 2], auto_pad=AutoPad.SAME_UPPER)
        shape, _ = infer_conv_transpose_shape([1, 1, 4, 4], [1, 1, 4, 4], attrs)
        assert shape == [1, 1, 8, 8]

    def test_same_lower_from_string(self) -> None:
        attrs = ConvTransposeAttributes(strides=[2], auto_pad="same_lower")
        assert attrs.auto_pad == AutoPad.SAME_LOWER
        shape, _ = infer_conv_transpose_shape([1, 1, 5], [1, 1, 4], attrs)
        assert shape == [1, 1, 10]

    def test_valid_ignores_pads(self) -> None:
        attrs = ConvTransposeAttributes(pads=[2, 2], auto_pad=AutoPad.VALID)
        shape, resolved = infer_conv_transpose_shape([1, 1, 5], [1, 1, 3], attrs)
        assert shape == [1, 1, 7]
        assert resolved.pads == (0, 0)

    def test_target_larger_than_unpadded_raises(self) -> None:
        attrs = ConvTransposeAttributes(output_shape=[20])
        with pytest.raises(ValueError, match="exceeds the unpadded size"):
            infer_conv_transpose_shape([1, 1, 5], [1, 1, 3], attrs)

    def test_unknown_auto_pad_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown auto_pad"):
            ConvTransposeAttributes(auto_pad="SOMETIMES")


class TestAsymmetricPadding:
    """Asymmetric pads are replaced by their mean."""

    def test_pads_are_averaged_with_warning(self, caplog) -> None:
        attrs = ConvTransposeAttributes(pads=[1, 0, 3, 0])
        with caplog.at_level(logging.WARNING):
            shape, resolved = infer_conv_transpose_shape([1, 1, 6, 6], [1, 1, 3, 3], attrs)

        assert resolved.pads == (2, 0, 2, 0)
        assert resolved.padding_was_averaged
        assert shape == [1, 1, 4, 8]
        assert "Asymmetric padding" in caplog.text

    def test_symmetric_pads_do_not_warn(self, caplog) -> None:
        attrs = ConvTransposeAttributes(pads=[1, 1])
        with caplog.at_level(logging.WARNING):
            _, resolved = infer_conv_transpose_shape([1, 1, 6], [1, 1, 3], attrs)
        assert not resolved.padding_was_averaged
        assert "Asymmetric" not in caplog.text


class TestValidation:
    """Invalid shapes and attributes are rejected."""

    @pytest.mark.parametrize("input_shape", [[1, 3], [1, 3, 2, 2, 2, 2]])
    def test_unsupported_rank(self, input_shape) -> None:
        weight_shape = [3, 1] + [2] * (len(input_shape) - 2)
        with pytest.raises(ValueError, match="rank"):
            infer_conv_transpose_shape(input_shape, weight_shape)

    def test_weight_rank_mismatch(self) -> None:
        with pytest.raises(ValueError, match="does not match input rank"):
            infer_conv_transpose_shape([1, 3, 4, 4], [3, 1, 2])

    def test_group_must_divide_input_channels(self) -> None:
        attrs = ConvTransposeAttributes(group=2)
        with pytest.raises(ValueError, match="does not divide"):
            infer_conv_transpose_shape([1, 3, 4, 4], [3, 1, 2, 2], attrs)

    def test_weight_channels_must_match_input(self) -> None:
        with pytest.raises(ValueError, match="input channels"):
            infer_conv_transpose_shape([1, 4, 4, 4], [3, 1, 2, 2])

    def test_kernel_shape_must_match_weight(self) -> None:
        attrs = ConvTransposeAttributes(kernel_shape=[3, 3])
        with pytest.raises(ValueError, match="kernel_shape"):
            infer_conv_transpose_shape([1, 1, 4, 4], [1, 1, 2, 2], attrs)

    def test_wrong_number_of_strides(self) -> None:
        attrs = ConvTransposeAttributes(strides=[2])
        with pytest.raises(ValueError, match="strides must have 2 entries"):
            infer_conv_transpose_shape([1, 1, 4, 4], [1, 1, 2, 2], attrs)

    def test_non_positive_output_size(self) -> None:
        attrs = ConvTransposeAttributes(pads=[3, 3])
        with pytest.raises(ValueError, match="not positive"):
            infer_conv_transpose_shape([1, 1, 2], [1, 1, 2], attrs)

    def test_group_must_be_positive(self) -> None:
        with pytest.raises(ValueError, match="group"):
            ConvTransposeAttributes(group=0)

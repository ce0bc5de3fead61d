import pytest

from chatclient import codec
from chatclient.config import MAX_MSG_LEN, TERMINATOR
from chatclient.errors import FrameError


def test_encode_appends_single_terminator():
    assert codec.encode("hello") == b"hello\x00"
    assert codec.encode("") == TERMINATOR


def test_encode_largest_message_fits_exactly():
    frame = codec.encode("a" * (MAX_MSG_LEN - 1))
    assert len(frame) == MAX_MSG_LEN


def test_encode_rejects_oversized_text():
    with pytest.raises(FrameError):
        codec.encode("a" * MAX_MSG_LEN)


def test_encode_counts_bytes_not_characters():
    # each "é" is two bytes in UTF-8
    with pytest.raises(FrameError):
        codec.encode("é" * (MAX_MSG_LEN // 2))


def test_encode_rejects_embedded_terminator():
    with pytest.raises(FrameError):
        codec.encode("hel\x00lo")


def test_decode_strips_terminator():
    assert codec.decode(b"hello\x00") == "hello"
    assert codec.decode(b"hello") == "hello"


def test_decode_honours_length():
    assert codec.decode(b"hello\x00garbage", 6) == "hello"


def test_decode_replaces_invalid_utf8():
    assert codec.decode(b"ok\xff\x00") == "ok�"


@pytest.mark.parametrize("text", ["hi there", "x" * (MAX_MSG_LEN - 1), "naïve ☃"])
def test_decode_inverts_encode(text):
    assert codec.decode(codec.encode(text)) == text


def test_sentinel_is_exact_and_case_sensitive():
    assert codec.is_sentinel("bye")
    assert not codec.is_sentinel("Bye")
    assert not codec.is_sentinel("bye ")
    assert not codec.is_sentinel("goodbye")


def test_frame_decoder_reassembles_split_frames():
    dec = codec.FrameDecoder()
    dec.feed(b"hel")
    assert not dec.has_frame()
    assert dec.next_frame() is None
    dec.feed(b"lo\x00wor")
    assert dec.next_frame() == "hello"
    assert dec.next_frame() is None
    dec.feed(b"ld\x00")
    assert dec.next_frame() == "world"
    assert len(dec) == 0


def test_frame_decoder_splits_coalesced_frames():
    dec = codec.FrameDecoder()
    dec.feed(b"one\x00two\x00bye\x00")
    assert [dec.next_frame(), dec.next_frame(), dec.next_frame()] == ["one", "two", "bye"]
    assert not dec.has_frame()


def test_frame_decoder_rejects_unterminated_oversized_frame():
    dec = codec.FrameDecoder(max_len=8)
    dec.feed(b"12345678")
    with pytest.raises(FrameError):
        dec.next_frame()
    assert len(dec) == 0


def test_frame_decoder_rejects_terminated_oversized_frame():
    dec = codec.FrameDecoder(max_len=8)
    dec.feed(b"123456789\x00")
    with pytest.raises(FrameError):
        dec.next_frame()

from asynchttpclient.http.chunked import ChunkDecoder


class TestChunkDecoder:
    def test_single_feed(self):
        decoder = ChunkDecoder()
        assert decoder.feed(b"5\r\nhello\r\n0\r\n\r\n") == (b"hello", True)
        assert decoder.done

    def test_multiple_chunks(self):
        decoder = ChunkDecoder()
        content, done = decoder.feed(b"5\r\nhello\r\n1\r\n \r\nA\r\n0123456789\r\n0\r\n\r\n")
        assert content == b"hello 0123456789"
        assert done

    def test_byte_by_byte(self):
        body = b"4\r\nWiki\r\n5\r\npedia\r\ne\r\n in\r\n\r\nchunks.\r\n0\r\n\r\n"
        decoder = ChunkDecoder()
        results = [decoder.feed(body[i : i + 1]) for i in range(len(body))]
        assert results[-1] == (b"Wikipedia in\r\n\r\nchunks.", True)
        # complete once the "0\r\n" line is in, before the final blank line
        assert [done for _, done in results].index(True) == len(body) - 3

    def test_partial_chunk(self):
        decoder = ChunkDecoder()
        assert decoder.feed(b"a\r\n01234") == (b"01234", False)
        assert decoder.feed(b"56789\r\n") == (b"0123456789", False)
        assert decoder.feed(b"0\r\n\r\n") == (b"0123456789", True)

    def test_chunk_extensions_ignored(self):
        decoder = ChunkDecoder()
        assert decoder.feed(b"5;name=value\r\nhello\r\n0\r\n\r\n") == (b"hello", True)

    def test_trailers_ignored(self):
        decoder = ChunkDecoder()
        content, done = decoder.feed(b"2\r\nok\r\n0\r\nExpires: never\r\n\r\n")
        assert (content, done) == (b"ok", True)

    def test_garbage_size_is_terminator(self):
        decoder = ChunkDecoder()
        assert decoder.feed(b"2\r\nok\r\nzz\r\nmore\r\n") == (b"ok", True)

    def test_no_crlf_yet(self):
        decoder = ChunkDecoder()
        assert decoder.feed(b"5") == (b"", False)
        assert decoder.content == b""
        assert not decoder.done

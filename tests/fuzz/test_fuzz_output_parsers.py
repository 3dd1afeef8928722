import random
import string
import pytest
from nerdctld.exceptions import ConfigError, OutputParseError
from nerdctld.MODELS.records import ContainerRecord
from nerdctld.MODELS.server_config import ListenAddress
from nerdctld.PARSERS.build_cache_parser import parse_build_cache
from nerdctld.PARSERS.conversions import byte_size, cache_size, unix_natural, unix_time
from nerdctld.PARSERS.output_parser import parse_inspect, parse_records, parse_rmi
from nerdctld.PARSERS.version_banner import parse_module_banner, parse_runc_banner
from nerdctld.UTILS.image_reference import ImageReference

rng = random.Random(1337)

def random_string(length, alphabet=string.printable):
    return ''.join(rng.choice(alphabet) for _ in range(length))

def fuzz(function, expected, alphabet=string.printable, rounds=200, max_length=300):
    """Feeds random text to ``function``; only ``expected`` may be raised."""
    for _ in range(rounds):
        content = random_string(rng.randint(0, max_length), alphabet)
        try:
            function(content)
        except expected:
            pass

def test_fuzz_json_lines():
    fuzz(lambda text: parse_records(ContainerRecord, text), OutputParseError)
    fuzz(lambda text: parse_records(ContainerRecord, text), OutputParseError,
         alphabet='{}[]":,0123456789abcIDNames \n')

def test_fuzz_inspect():
    fuzz(parse_inspect, OutputParseError, alphabet='{}[]":,null0123 \n')

def test_fuzz_build_cache_report():
    fuzz(parse_build_cache, OutputParseError)
    fuzz(parse_build_cache, OutputParseError, alphabet="IDParentSizeTotal:\t\n 0123456789.KMGB")

def test_fuzz_sizes_and_times():
    fuzz(byte_size, OutputParseError, alphabet="0123456789. KMGiB-e")
    fuzz(cache_size, OutputParseError, alphabet="0123456789.KMGiBkb-e")
    fuzz(unix_time, OutputParseError, alphabet="0123456789-: T+UTCZ.")
    fuzz(lambda text: unix_natural(text, 0), OutputParseError, alphabet="0123456789 abouthrminsecdaywkago")

def test_fuzz_banners():
    fuzz(lambda text: parse_module_banner(text, "containerd"), OutputParseError)
    fuzz(parse_runc_banner, OutputParseError)

def test_fuzz_rmi_never_fails():
    for _ in range(200):
        items = parse_rmi(random_string(rng.randint(0, 300)))
        assert all(len(item) == 1 for item in items)

def test_fuzz_addresses_and_references():
    fuzz(ListenAddress.parse, ConfigError, alphabet="unixtcpfd:/0123456789.[]")
    fuzz(ImageReference.parse, ValueError, alphabet="abc:/@.0123456789")

@pytest.mark.parametrize("text", ["inf", "1e999 GiB", "nan KiB", "-inf B"])
def test_non_finite_sizes(text):
    with pytest.raises(OutputParseError):
        byte_size(text)

@pytest.mark.parametrize("text", ["infB", "1e999GB", "nanKB"])
def test_non_finite_cache_sizes(text):
    with pytest.raises(OutputParseError):
        cache_size(text)

#!/usr/bin/env python3
"""
CLI for rebuilding files from encrypted chunk chains.

Commands:
  chain-assemble reconstruct --store DIR --tail HEX --to DEST [OPTIONS]
  chain-assemble inspect --store DIR --tail HEX [OPTIONS]

The tail key is read as hex from --key-file, or prompted without echo.
"""

from __future__ import annotations

import argparse
import getpass
import sys
from pathlib import Path

from chain_core.address import parse_address, parse_key
from chain_core.archive import RawFileWriter, TarArchiveExtractor
from chain_core.assembler import Assembler
from chain_core.config import load_settings
from chain_core.errors import AuthenticationFailed, ChainError, NotFound
from chain_core.logger import logger
from chain_core.reassembler import infer_nominal_size
from chain_core.secure_bytes import SecureKey
from chain_core.store import DirectoryChunkStore


def read_key(key_file: str | None) -> SecureKey:
    """Load the tail key (hex) from a file or prompt for it."""
    if key_file:
        text = Path(key_file).read_text(encoding="utf-8")
    else:
        try:
            text = getpass.getpass("Tail key (hex): ")
        except KeyboardInterrupt:
            print("\n\nOperation cancelled.")
            sys.exit(1)
    return SecureKey(parse_key(text))


def _build_assembler(args: argparse.Namespace) -> Assembler:
    settings = load_settings(
        cipher=args.cipher,
        max_chunks=args.max_chunks,
        store_dir=args.store,
    )
    if settings.store_dir is None:
        raise ValueError("No chunk store given (use --store or CHAIN_STORE_DIR)")
    if not settings.store_dir.is_dir():
        raise ValueError(f"Chunk store not found: {settings.store_dir}")
    extractor = RawFileWriter() if getattr(args, "raw", False) else TarArchiveExtractor()
    return Assembler.from_backend(
        DirectoryChunkStore(settings.store_dir), settings=settings, extractor=extractor
    )


def cmd_reconstruct(args: argparse.Namespace) -> int:
    """Command: rebuild the original file(s) at --to."""
    destination = Path(args.to)
    try:
        tail = parse_address(args.tail)
        assembler = _build_assembler(args)
        with read_key(args.key_file) as key:
            out = assembler.reconstruct(tail, key.buffer, destination)
        print(f"Reconstructed: {out}")
        return 0

    except AuthenticationFailed as e:
        print(f"Error: wrong key or corrupted chunk: {e}")
        return 1

    except NotFound as e:
        print(f"Error: chunk missing from store: {e}")
        return 1

    except (ChainError, ValueError, OSError) as e:
        logger.error("Reconstruct failed: %s", e)
        print(f"Error: {e}")
        return 1


def cmd_inspect(args: argparse.Namespace) -> int:
    """Command: walk the chain and report its shape without writing anything."""
    try:
        tail = parse_address(args.tail)
        assembler = _build_assembler(args)
        with read_key(args.key_file) as key:
            result = assembler.walk(tail, key.buffer)
    except (ChainError, ValueError, OSError) as e:
        logger.error("Inspect failed: %s", e)
        print(f"Error: {e}")
        return 1

    nominal = infer_nominal_size(result.terminal_length, result.terminal_padding)
    print(f"\nChain from tail: {tail.hex()}")
    print(f"Chunks:          {result.chunk_count}")
    print(f"Nominal size:    {nominal} B")
    print(f"Stream length:   {result.total_length} B\n")

    if args.verbose:
        print(f"{'Step':<6} {'Address':<18} {'Payload':<10} {'Padding'}")
        print("-" * 48)
        for step, (addr, payload, padding) in enumerate(
            zip(result.addresses, result.payloads, result.paddings)
        ):
            print(f"{step:<6} {addr.hex()[:16]:<18} {len(payload):<10} {padding}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="chain-assemble",
        description="Rebuild files from encrypted content-addressed chunk chains",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--store", help="Chunk store directory (default: CHAIN_STORE_DIR)")
    common.add_argument("--tail", required=True, help="Tail chunk address (hex)")
    common.add_argument("--key-file", help="File holding the tail key as hex (prompted if omitted)")
    common.add_argument("--cipher", help="Cipher suite: AESG (AES-256-GCM) or XC20 (XChaCha20-Poly1305)")
    common.add_argument("--max-chunks", type=int, help="Abort chains longer than this")

    parser_rec = subparsers.add_parser("reconstruct", parents=[common], help="Rebuild a file")
    parser_rec.add_argument("--to", required=True, help="Destination (directory for archives, file with --raw)")
    parser_rec.add_argument("--raw", action="store_true", help="Write the stream as-is instead of extracting it")

    parser_ins = subparsers.add_parser("inspect", parents=[common], help="Walk a chain without writing")
    parser_ins.add_argument("-v", "--verbose", action="store_true", help="List every chunk")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.command == "reconstruct":
        return cmd_reconstruct(args)
    elif args.command == "inspect":
        return cmd_inspect(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())

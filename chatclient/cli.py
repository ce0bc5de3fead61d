#!/usr/bin/env python3
"""
chatclient - interactive terminal chat client.

Usage:
    chatclient <server IP> <port> [--timeout SECONDS] [-v]

Asks for a username, connects, sends the username as the first frame and
then relays lines between the terminal and the server until either side
says "bye", the terminal input ends, or the connection drops.
"""
import argparse
import ipaddress
import logging
import os
import sys
from typing import List, Optional, TextIO, Tuple

from chatclient.config import (
    CONNECT_TIMEOUT, EXIT_FAILURE, MAX_NAME_LEN, MAX_PORT, MIN_PORT,
)
from chatclient.errors import AddressError, ConnectError
from chatclient.line_reader import LineReader, ReadStatus
from chatclient.logger_config import setup_logger
from chatclient.loop import ChatLoop
from chatclient.session import SendStatus, Session

log = logging.getLogger("chatclient.cli")


# --------------- Address resolution ---------------
def resolve_address(ip: str, port_text: str) -> Tuple[str, int]:
    try:
        addr = ipaddress.IPv4Address(ip)
    except ValueError:
        raise AddressError(f"Error: Invalid IP address '{ip}'.")
    try:
        port = int(port_text)
    except ValueError:
        raise AddressError(f"Error: Invalid input '{port_text}' received for server port number.")
    if port < MIN_PORT or port > MAX_PORT:
        raise AddressError(f"Error: Port must be in range [{MIN_PORT}, {MAX_PORT}].")
    return str(addr), port


# --------------- Username prompt ---------------
def prompt_display_name(reader: LineReader, out: TextIO, err: TextIO,
                        interactive: bool, max_len: int = MAX_NAME_LEN) -> Optional[str]:
    """Keep asking until a usable name is typed; None if input runs out."""
    while True:
        if interactive:
            out.write("Enter Username: ")
        out.flush()

        result = reader.read_line(limit=max_len)
        if result.status in (ReadStatus.END_OF_INPUT, ReadStatus.IO_ERROR):
            return None
        if result.status is ReadStatus.TOO_LONG:
            print(f"Sorry, limit your username to {max_len} characters.", file=err)
            continue
        if result.status is not ReadStatus.LINE:
            continue
        if not result.text.isprintable():
            print("Sorry, usernames may only contain printable characters.", file=err)
            continue
        return result.text


# --------------- CLI ---------------
def parse_args(argv: Optional[List[str]] = None):
    p = argparse.ArgumentParser(prog="chatclient", description="Interactive terminal chat client")
    p.add_argument("server_ip", help="Server IPv4 address, e.g. 127.0.0.1")
    p.add_argument("port", help=f"Server port in [{MIN_PORT}, {MAX_PORT}]")
    p.add_argument("--timeout", type=float, default=CONNECT_TIMEOUT, help="Connect timeout (sec)")
    p.add_argument("-v", "--verbose", action="store_true", help="Log diagnostics to stderr")
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None, stdin_fd: Optional[int] = None,
         out: Optional[TextIO] = None, err: Optional[TextIO] = None) -> int:
    args = parse_args(argv)
    out = out if out is not None else sys.stdout
    err = err if err is not None else sys.stderr
    stdin_fd = sys.stdin.fileno() if stdin_fd is None else stdin_fd
    setup_logger("chatclient", logging.DEBUG if args.verbose else logging.WARNING)

    try:
        host, port = resolve_address(args.server_ip, args.port)
    except AddressError as e:
        print(e, file=err)
        return EXIT_FAILURE
    log.debug(f"action: resolve_address | result: success | ip: {host} | port: {port}")

    interactive = os.isatty(stdin_fd)
    reader = LineReader(stdin_fd)
    try:
        name = prompt_display_name(reader, out, err, interactive)
    except KeyboardInterrupt:
        name = None
    if name is None:
        print("Error: Failed to read username.", file=err)
        return EXIT_FAILURE

    out.write(f"Hello, {name}. Let's try to connect to the server.")
    out.flush()

    try:
        session = Session.connect(host, port, timeout=args.timeout)
    except ConnectError as e:
        print(file=out)
        print(f"Error: Failed to connect to server. {e}.", file=err)
        return EXIT_FAILURE

    with session:
        sent = session.send_name(name)
        if sent.status is SendStatus.SEND_FAILED:
            print(file=out)
            print(f"Error: Failed to send username. ({sent.error})", file=err)
            return EXIT_FAILURE
        print(file=out)

        try:
            termination = ChatLoop(session, reader, name, out=out, err=err,
                                   interactive=interactive).run()
        except KeyboardInterrupt:
            print("\nInterrupted.", file=err)
            return EXIT_FAILURE
    return termination.exit_code


if __name__ == "__main__":
    sys.exit(main())

"""
loop.py - select()-driven event loop multiplexing the keyboard and the server.

Startup handshake: the operator is not prompted (and typed input is left
unread) until the server has sent its first message. After that every
iteration waits on both sources, handles the connection first, then one
line of operator input, then redraws the prompt.

Handlers never exit the process. Each one either returns None (keep going)
or a Termination describing why the session ends; run() alone closes the
connection and hands the Termination back to the caller.
"""
import enum
import logging
import select
import sys
from dataclasses import dataclass
from typing import Optional, TextIO

from chatclient import codec
from chatclient.config import EXIT_FAILURE, EXIT_SUCCESS, MAX_MSG_LEN
from chatclient.errors import FrameError
from chatclient.line_reader import LineReader, ReadStatus
from chatclient.session import ReceiveStatus, SendStatus, Session

log = logging.getLogger("chatclient.loop")


class LoopState(enum.Enum):
    AWAITING_FIRST_SERVER_MESSAGE = "awaiting_first_server_message"
    PROMPT_PENDING = "prompt_pending"
    INTERACTIVE = "interactive"
    TERMINATED = "terminated"


class TerminationReason(enum.Enum):
    END_OF_INPUT = "end_of_input"
    LOCAL_BYE = "local_bye"
    PEER_BYE = "peer_bye"
    PEER_CLOSED = "peer_closed"
    SEND_FAILED = "send_failed"
    RECEIVE_FAILED = "receive_failed"
    INPUT_ERROR = "input_error"
    MULTIPLEX_ERROR = "multiplex_error"
    INTERRUPTED = "interrupted"
    OUTPUT_ERROR = "output_error"


CLEAN_EXITS = {
    TerminationReason.END_OF_INPUT,
    TerminationReason.LOCAL_BYE,
    TerminationReason.PEER_BYE,
}


@dataclass(frozen=True)
class Termination:
    reason: TerminationReason
    notice: str = ""
    to_stderr: bool = False

    @property
    def exit_code(self) -> int:
        return EXIT_SUCCESS if self.reason in CLEAN_EXITS else EXIT_FAILURE


class ChatLoop:
    def __init__(self, session: Session, reader: LineReader, name: str,
                 out: Optional[TextIO] = None, err: Optional[TextIO] = None,
                 interactive: bool = False):
        self.session = session
        self.reader = reader
        self.name = name
        self.out = out if out is not None else sys.stdout
        self.err = err if err is not None else sys.stderr
        self.interactive = interactive
        self.state = LoopState.AWAITING_FIRST_SERVER_MESSAGE
        self._redraw = False

    def run(self) -> Termination:
        termination = None
        try:
            while termination is None:
                try:
                    termination = self._iterate()
                except OSError as e:
                    # only terminal writes raise here
                    log.debug(f"action: write_terminal | result: fail | error: {e}")
                    termination = Termination(TerminationReason.OUTPUT_ERROR,
                                              f"Error: Failed to write to the terminal. ({e})",
                                              to_stderr=True)
        finally:
            self.state = LoopState.TERMINATED
            self.session.close()
        try:
            if termination.notice:
                stream = self.err if termination.to_stderr else self.out
                print(termination.notice, file=stream)
            self._flush()
        except OSError as e:
            log.debug(f"action: write_notice | result: fail | error: {e}")
        log.debug(f"action: terminate | result: {termination.reason.value} | exit_code: {termination.exit_code}")
        return termination

    # --------------- One wake-up ---------------
    def _iterate(self) -> Optional[Termination]:
        watching_input = self.state is not LoopState.AWAITING_FIRST_SERVER_MESSAGE
        try:
            sock_ready, input_ready = self._wait(watching_input)
        except KeyboardInterrupt:
            return Termination(TerminationReason.INTERRUPTED, "\nInterrupted.", to_stderr=True)
        except (OSError, ValueError) as e:
            return Termination(TerminationReason.MULTIPLEX_ERROR, f"select: {e}", to_stderr=True)

        # the connection goes first so a server "bye" is never hidden behind local input
        if sock_ready:
            termination = self._handle_connection()
            if termination is not None:
                return termination

        if self.state is LoopState.PROMPT_PENDING:
            self.out.write("\n")
            self.state = LoopState.INTERACTIVE
            self._redraw = True
            log.debug("action: handshake | result: success")

        if self.state is LoopState.INTERACTIVE:
            if input_ready and watching_input:
                termination = self._handle_input()
                if termination is not None:
                    return termination
            if self._redraw:
                self._prompt()
        return None

    def _wait(self, watching_input: bool):
        sources = [self.session]
        if watching_input:
            sources.append(self.reader)

        buffered_input = watching_input and self.reader.has_buffered_line()
        buffered_frames = self.session.has_pending()
        timeout = 0 if (buffered_input or buffered_frames) else None

        readable, _, _ = select.select(sources, [], [], timeout)
        sock_ready = buffered_frames or self.session in readable
        input_ready = buffered_input or self.reader in readable
        return sock_ready, input_ready

    # --------------- Connection side ---------------
    def _handle_connection(self) -> Optional[Termination]:
        result = self.session.receive()
        if result.status is ReceiveStatus.RETRY:
            return None
        if result.status is ReceiveStatus.PEER_CLOSED:
            return Termination(TerminationReason.PEER_CLOSED,
                               "\nConnection to server has been lost.", to_stderr=True)
        if result.status is ReceiveStatus.RECEIVE_FAILED:
            return Termination(TerminationReason.RECEIVE_FAILED,
                               f"Warning: Failed to receive incoming message. ({result.error})",
                               to_stderr=True)

        if self.state is LoopState.AWAITING_FIRST_SERVER_MESSAGE:
            self.state = LoopState.PROMPT_PENDING

        if codec.is_sentinel(result.text):
            return Termination(TerminationReason.PEER_BYE, "\nServer initiated shutdown.")

        self.out.write(f"\n{result.text}\n")
        self._redraw = True
        return None

    # --------------- Operator side ---------------
    def _handle_input(self) -> Optional[Termination]:
        result = self.reader.read_line(wait=False)
        status = result.status

        if status is ReadStatus.INCOMPLETE:
            return None
        self._redraw = True
        if status is ReadStatus.EMPTY:
            return None
        if status is ReadStatus.TOO_LONG:
            self._complain(f"Sorry, limit your message to 1 line of at most {MAX_MSG_LEN - 1} characters.")
            return None
        if status is ReadStatus.END_OF_INPUT:
            return Termination(TerminationReason.END_OF_INPUT, "\nInput closed.")
        if status is ReadStatus.IO_ERROR:
            return Termination(TerminationReason.INPUT_ERROR,
                               f"Error: Failed to read user input. ({result.error})", to_stderr=True)

        try:
            codec.encode(result.text)
        except FrameError as e:
            self._complain(f"Sorry, that message cannot be sent: {e}.")
            return None

        sent = self.session.send(result.text)
        if sent.status is SendStatus.SEND_FAILED:
            return Termination(TerminationReason.SEND_FAILED,
                               f"Error: Failed to send message. ({sent.error})", to_stderr=True)

        if codec.is_sentinel(result.text):
            return Termination(TerminationReason.LOCAL_BYE, "Goodbye.")
        return None

    # --------------- Terminal output ---------------
    def _prompt(self) -> None:
        self._redraw = False
        if self.interactive:
            self.out.write(f"[{self.name}]: ")
        self._flush()

    def _complain(self, message: str) -> None:
        self._flush()
        print(message, file=self.err)

    def _flush(self) -> None:
        self.out.flush()
        self.err.flush()

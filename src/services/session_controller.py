"""
Orchestration of a game session: the phase state machine between the user, the board mirror and the server.

User intents and server messages both end up here, one at a time. The controller checks local legality
(against the legal set the server last sent), updates the board, tells the renderer what changed and
pushes protocol messages into the transport.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

from src.api.models import encode_move, encode_start, parse_server_message
from src.client.render import Renderer
from src.client.transport import Transport, TransportFactory
from src.core.events import (
    GameEnded,
    Intent,
    LegalMovesReceived,
    MoveReceived,
    ResetGame,
    SelectSquare,
    ServerError,
    ServerEvent,
    StartGame,
)
from src.core.exceptions import (
    ConnectionFailureError,
    IllegalLocalMoveError,
    ProtocolError,
    SessionStateError,
)
from src.core.shared_types import CLIENT_TURN_PHASES, Color, MessageKind, Phase
from src.mill.board import BoardState
from src.mill.moves import (
    Move,
    destination_squares,
    move_kind,
    removal_squares,
    requires_removal,
    selectable_from_squares,
)
from src.mill.pieces import Piece
from src.mill.square import Square

logger = logging.getLogger(__name__)


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Just the part of an event loop the controller needs (asyncio's loop fits)"""

    def call_soon(self, callback: Callable[[], None]) -> Cancellable: ...


@dataclass
class GameSession:
    """Everything that lives exactly as long as one game. A reset throws the whole thing away."""

    board: BoardState = field(default_factory=BoardState)
    phase: Phase = Phase.AWAITING_START
    player_is_black: bool = True
    selected_piece: Optional[Piece] = None
    selected_from_square: Optional[Square] = None
    # placement/movement that still needs an opponent square to capture
    pending_move: Optional[Move] = None
    winner_is_black: Optional[bool] = None
    transport: Optional[Transport] = field(default=None, repr=False)
    pending_pass: Optional[Cancellable] = field(default=None, repr=False)

    @property
    def player_color(self) -> Color:
        return Color.from_is_black(self.player_is_black)

    @property
    def is_local_turn(self) -> bool:
        return self.board.turn_is_black == self.player_is_black

    def clear_selection(self) -> None:
        self.selected_piece = None
        self.selected_from_square = None
        self.pending_move = None


class SessionController:
    """Phase state machine for a single live session."""

    def __init__(
        self,
        renderer: Renderer,
        transport_factory: TransportFactory,
        scheduler: Scheduler,
    ) -> None:
        self.renderer = renderer
        self.transport_factory = transport_factory
        self.scheduler = scheduler
        self.session = GameSession()

    @property
    def phase(self) -> Phase:
        return self.session.phase

    @property
    def board(self) -> BoardState:
        return self.session.board

    # -- USER INTENTS ---
    def dispatch(self, intent: Intent) -> None:
        if isinstance(intent, StartGame):
            self.start_game(intent.play_black)
        elif isinstance(intent, SelectSquare):
            self.select(intent.square)
        elif isinstance(intent, ResetGame):
            self.reset()
        else:
            raise TypeError(f"Unknown intent: {intent!r}")

    def start_game(self, play_black: bool) -> None:
        """Open the connection, announce our color. Black places first, so black does not wait."""
        session = self.session
        if session.phase != Phase.AWAITING_START:
            raise SessionStateError(
                f"Cannot start a game while {session.phase}. Reset the session first."
            )

        session.player_is_black = play_black
        session.transport = self.transport_factory(
            lambda raw: self._route_message(session, raw),
            lambda error: self._route_failure(session, error),
        )
        self._change_phase(
            Phase.CLIENT_PLACEMENT if play_black else Phase.WAITING_FOR_SERVER
        )
        self.renderer.display_message(MessageKind.BLACK_PLACEMENT)
        session.transport.open()
        session.transport.send(encode_start(play_black))

    def select(self, square: Square) -> None:
        """The user clicked a point on the board. Anything not leading to a legal move is ignored."""
        phase = self.session.phase
        try:
            if phase == Phase.CLIENT_PLACEMENT:
                self._select_placement(square)
            elif phase == Phase.CLIENT_MOVEMENT:
                self._select_movement(square)
            elif phase == Phase.CLIENT_REMOVAL:
                self._select_removal(square)
            else:
                logger.debug("Ignoring selection of %s while %s", square, phase)
        except IllegalLocalMoveError as e:
            logger.debug("Ignoring selection of %s: %s", square, e)

    def reset(self) -> None:
        """Throw away the current session (whatever its phase) and start over from scratch."""
        self.close()
        self.session = GameSession()
        logger.info("Session reset")
        self.renderer.render_legal_highlight([])
        self.renderer.display_message(MessageKind.START)

    def close(self) -> None:
        """Cancel any deferred pass and release the connection of the current session."""
        self._cancel_pending_pass(self.session)
        self._close_transport(self.session)

    # -- SERVER MESSAGES ---
    def handle_message(self, raw: str | bytes) -> None:
        """One inbound message. It may carry both a move and the next legal set: handled in that order."""
        if self.session.phase in (Phase.AWAITING_START, Phase.GAME_OVER):
            logger.debug("Ignoring message while %s: %s", self.session.phase, raw)
            return

        try:
            events = parse_server_message(raw)
        except ProtocolError as e:
            logger.warning("%s", e)
            self.renderer.display_message(MessageKind.ERROR, str(e))
            return

        for event in events:
            self._handle_event(event)

    def abort(self, error: Exception) -> None:
        """The connection broke down or the board fell out of step with the server. Terminal: no retry."""
        session = self.session
        if session.phase in (Phase.AWAITING_START, Phase.GAME_OVER):
            return

        logger.error("Session aborted: %s", error)
        self._cancel_pending_pass(session)
        session.clear_selection()
        session.winner_is_black = None
        self._change_phase(Phase.GAME_OVER)
        if isinstance(error, ConnectionFailureError):
            self.renderer.display_message(MessageKind.NO_CONNECTION, str(error))
        else:
            self.renderer.display_message(MessageKind.ERROR, str(error))
        self._close_transport(session)

    # -- PRIVATE HELPERS ---
    def _route_message(self, session: GameSession, raw: str) -> None:
        """Messages from the connection of a session that was already reset are dropped."""
        if session is not self.session:
            logger.debug("Dropping message for a stale session: %s", raw)
            return
        self.handle_message(raw)

    def _route_failure(self, session: GameSession, error: Exception) -> None:
        if session is not self.session:
            return
        self.abort(error)

    def _handle_event(self, event: ServerEvent) -> None:
        if isinstance(event, ServerError):
            logger.warning("Server reported an error: %s", event.detail)
            self.renderer.display_message(MessageKind.ERROR, str(event.detail))
        elif isinstance(event, GameEnded):
            self._end_game(event.black_won)
        elif isinstance(event, MoveReceived):
            self._apply_server_move(event.move)
        elif isinstance(event, LegalMovesReceived):
            self._receive_legal_moves(event.moves)

    def _apply_server_move(self, move: Optional[Move]) -> None:
        session = self.session
        session.board.apply_move(move)
        logger.info("Server move: %s %s", move_kind(move).name.lower(), move)
        self.renderer.render_move(move, session.board)
        # the turn changed hands: whatever was selected belongs to a stale legal set
        if session.phase in CLIENT_TURN_PHASES:
            self._change_phase(Phase.WAITING_FOR_SERVER)

    def _receive_legal_moves(self, moves: list[Move]) -> None:
        session = self.session
        session.board.set_legal_moves(moves)
        logger.debug("Legal moves: %s", moves)

        if not session.is_local_turn:
            logger.warning(
                "Received legal moves while it is the opponent's turn, waiting for their move"
            )
            if session.phase != Phase.WAITING_FOR_SERVER:
                self._change_phase(Phase.WAITING_FOR_SERVER)
            return

        if not moves:
            # no legal move: pass, but only after the current message has been fully handled
            if session.phase != Phase.WAITING_FOR_SERVER:
                self._change_phase(Phase.WAITING_FOR_SERVER)
            self._schedule_pass()
            return

        if all(move.is_placement() for move in moves):
            self._change_phase(Phase.CLIENT_PLACEMENT)
            self.renderer.render_legal_highlight(destination_squares(moves))
        else:
            self._change_phase(Phase.CLIENT_MOVEMENT)
            self.renderer.render_legal_highlight(selectable_from_squares(moves))
        self.renderer.display_message(MessageKind.YOUR_TURN)

    def _end_game(self, black_won: bool) -> None:
        session = self.session
        self._cancel_pending_pass(session)
        session.clear_selection()
        session.winner_is_black = black_won
        self._change_phase(Phase.GAME_OVER)
        self.renderer.render_legal_highlight([])
        self.renderer.display_message(
            MessageKind.YOU_WON
            if black_won == session.player_is_black
            else MessageKind.YOU_LOST
        )
        self._close_transport(session)

    def _select_placement(self, square: Square) -> None:
        if not self.session.board.is_empty(square):
            raise IllegalLocalMoveError(f"Cannot place on occupied square {square}.")
        self._complete_move(Move(square))

    def _select_movement(self, square: Square) -> None:
        session = self.session
        piece = session.board.piece_at(square)
        if piece is not None:
            if piece.color != session.player_color:
                raise IllegalLocalMoveError(f"Piece on {square} is not yours.")
            # (re)select: overwrites any earlier selection, nothing is sent
            session.selected_piece = piece
            session.selected_from_square = square
            self.renderer.render_legal_highlight(
                destination_squares(session.board.legal_moves, square)
            )
            return

        if session.selected_from_square is None:
            raise IllegalLocalMoveError("Select one of your pieces first.")
        self._complete_move(Move(square, from_square=session.selected_from_square))

    def _select_removal(self, square: Square) -> None:
        session = self.session
        piece = session.board.piece_at(square)
        if piece is None or piece.color == session.player_color:
            raise IllegalLocalMoveError(f"No opponent piece on {square}.")
        if session.pending_move is None:
            raise SessionStateError("No move is waiting for a removal target.")

        move = session.pending_move.with_removal(square)
        if not session.board.is_legal(move):
            raise IllegalLocalMoveError(f"Removing the piece on {square} is not allowed.")
        self._send_move(move)

    def _complete_move(self, move: Move) -> None:
        """Send the move if it is legal as is, or ask for a capture target if the server only allows it with one."""
        session = self.session
        if session.board.is_legal(move):
            self._send_move(move)
            return

        legal_moves = session.board.legal_moves
        if requires_removal(move.square, move.from_square, legal_moves):
            self._change_phase(Phase.CLIENT_REMOVAL)
            session.pending_move = move
            self.renderer.render_legal_highlight(
                removal_squares(move.square, move.from_square, legal_moves)
            )
            self.renderer.display_message(MessageKind.SELECT_REMOVAL)
            return

        raise IllegalLocalMoveError(f"Move not allowed: {move}")

    def _send_move(self, move: Optional[Move]) -> None:
        """Apply locally (optimistic), then tell the server. The server does not echo our own moves."""
        session = self.session
        if session.transport is None:
            raise ConnectionFailureError("Session has no open connection.")
        session.board.apply_move(move)
        logger.info("Own move: %s %s", move_kind(move).name.lower(), move)
        self.renderer.render_move(move, session.board)
        session.clear_selection()
        self._change_phase(Phase.WAITING_FOR_SERVER)
        self.renderer.render_legal_highlight([])
        self.renderer.display_message(MessageKind.WAITING)
        session.transport.send(encode_move(move))

    def _schedule_pass(self) -> None:
        session = self.session
        self._cancel_pending_pass(session)
        session.pending_pass = self.scheduler.call_soon(
            lambda: self._send_forced_pass(session)
        )

    def _send_forced_pass(self, session: GameSession) -> None:
        session.pending_pass = None
        # the session may have ended, been reset or moved on since the pass was scheduled
        if session is not self.session or session.phase != Phase.WAITING_FOR_SERVER:
            return
        if session.board.legal_moves or not session.is_local_turn:
            return
        logger.info("No legal moves: passing")
        self._send_move(None)

    def _cancel_pending_pass(self, session: GameSession) -> None:
        if session.pending_pass is not None:
            session.pending_pass.cancel()
            session.pending_pass = None

    def _close_transport(self, session: GameSession) -> None:
        if session.transport is not None:
            session.transport.close()
            session.transport = None

    def _change_phase(self, phase: Phase) -> None:
        session = self.session
        if session.phase in (Phase.CLIENT_MOVEMENT, Phase.CLIENT_REMOVAL):
            session.clear_selection()
        logger.info("Phase: %s -> %s", session.phase, phase)
        session.phase = phase

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.db.session import get_db
from app.models.book import Book
from app.models.user import User
from app.schemas.books import BookListResponse, BookOut, BookResponse, BookWrite
from app.schemas.common import MessageResponse
from app.services import branch_access

router = APIRouter(prefix="/books", tags=["books"])


def _book_out(book: Book, is_owner: bool = True) -> BookOut:
    return BookOut(
        id=book.id,
        name=book.name,
        user_id=book.owner_id,
        is_owner=is_owner,
        created_at=book.created_at,
        updated_at=book.updated_at,
    )


async def _get_owned_book(db: AsyncSession, book_id: UUID, owner_id: UUID) -> Book:
    stmt = select(Book).where(Book.id == book_id, Book.owner_id == owner_id)
    book = (await db.execute(stmt)).scalar_one_or_none()
    if not book:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Book not found")
    return book


@router.get("", response_model=BookListResponse, summary="List books the caller owns or can access")
async def list_books(
    current_user: User = Depends(deps.require_authenticated_user),
    db: AsyncSession = Depends(get_db),
) -> BookListResponse:
    owned = await branch_access.list_owned_branches(db, current_user.id)
    assigned = await branch_access.list_assigned_branches(db, current_user.id)
    owned_ids = {book.id for book in owned}
    books = [_book_out(book) for book in owned]
    books.extend(_book_out(book, is_owner=False) for book in assigned if book.id not in owned_ids)
    return BookListResponse(books=books)


@router.post("", response_model=BookResponse, status_code=201, summary="Create a book")
async def create_book(
    payload: BookWrite,
    current_user: User = Depends(deps.require_authenticated_user),
    db: AsyncSession = Depends(get_db),
) -> BookResponse:
    book = Book(name=payload.name, owner_id=current_user.id)
    db.add(book)
    await db.commit()
    await db.refresh(book)
    return BookResponse(book=_book_out(book))


@router.put("/{book_id}", response_model=BookResponse, summary="Rename a book")
async def update_book(
    book_id: UUID,
    payload: BookWrite,
    current_user: User = Depends(deps.require_authenticated_user),
    db: AsyncSession = Depends(get_db),
) -> BookResponse:
    book = await _get_owned_book(db, book_id, current_user.id)
    book.name = payload.name
    db.add(book)
    await db.commit()
    await db.refresh(book)
    return BookResponse(book=_book_out(book))


@router.delete("/{book_id}", response_model=MessageResponse, summary="Delete a book")
async def delete_book(
    book_id: UUID,
    current_user: User = Depends(deps.require_authenticated_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    book = await _get_owned_book(db, book_id, current_user.id)
    await db.delete(book)
    await db.commit()
    return MessageResponse(message="Book deleted successfully")

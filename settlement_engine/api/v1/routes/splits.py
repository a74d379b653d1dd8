from fastapi import APIRouter, HTTPException
from settlement_engine.schemas.split_schema import ExpenseSplitRequest, ExpenseSplitResponse
from settlement_engine.schemas.visualization_schema import SplitVisualization
from settlement_engine.services.visualization_service import generate_split_visualization
from settlement_engine.utils.exceptions import SettlementError
from settlement_engine.utils.split_calculator import calculate_splits

router = APIRouter(prefix="/splits", tags=["splits"])


@router.post("/calculate", response_model=ExpenseSplitResponse)
def calculate_expense_splits(request: ExpenseSplitRequest):
    """Split one expense among its participants"""
    try:
        splits = calculate_splits(request.expense_amount, request.currency, request.participants)
    except SettlementError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ExpenseSplitResponse(currency=request.currency, splits=splits)


@router.post("/visualize", response_model=SplitVisualization)
def visualize_expense_splits(request: ExpenseSplitRequest):
    """Split one expense and group the result by type and by user"""
    try:
        splits = calculate_splits(request.expense_amount, request.currency, request.participants)
    except SettlementError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return generate_split_visualization(request.expense_amount, request.currency, splits)

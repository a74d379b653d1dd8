from fastapi import APIRouter, HTTPException
from settlement_engine.schemas.settlement_schema import SettlementRequest, SettlementResponse
from settlement_engine.schemas.visualization_schema import NetworkGraph, SettlementBreakdown
from settlement_engine.services.settlement_service import (
    process_settlement_request, settle_in_working_currency
)
from settlement_engine.services.visualization_service import (
    generate_network_graph, generate_settlement_breakdown
)
from settlement_engine.utils.exceptions import SettlementError

router = APIRouter(prefix="/settlements", tags=["settlements"])


@router.post("/calculate", response_model=SettlementResponse)
def calculate_group_settlements(request: SettlementRequest):
    """Calculate settlement suggestions for a debt graph"""
    try:
        return process_settlement_request(request)
    except SettlementError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/breakdown", response_model=SettlementBreakdown)
def get_settlement_breakdown(request: SettlementRequest):
    """Explain how the debt graph was reduced to settlements, in the working currency"""
    try:
        working = settle_in_working_currency(
            request.debt_graph,
            algorithm=request.algorithm,
            friend_relations=request.friend_relations,
            exchange_rates=request.exchange_rates,
            working_currency=request.working_currency,
            simplify_cycles=request.simplify_cycles,
        )
    except SettlementError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return generate_settlement_breakdown(working.graph, working.settlements)


@router.post("/network", response_model=NetworkGraph)
def get_settlement_network(request: SettlementRequest):
    """Working-currency settlements as nodes and links for graph rendering"""
    try:
        working = settle_in_working_currency(
            request.debt_graph,
            algorithm=request.algorithm,
            friend_relations=request.friend_relations,
            exchange_rates=request.exchange_rates,
            working_currency=request.working_currency,
            simplify_cycles=request.simplify_cycles,
        )
    except SettlementError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return generate_network_graph(working.settlements)

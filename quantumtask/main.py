from fastapi import FastAPI, WebSocket, WebSocketDisconnect, HTTPException, Body
from fastapi.middleware.cors import CORSMiddleware
from typing import List, Optional
import uvicorn
import asyncio
import logging
from . import config
from .node_registry import registry
from .schemas import NodeMetadata, Edge, FlowNode, Workflow, AddNodeRequest, ConfigUpdate, ExecutionResult, GraphEvent
from .graph_store import GraphStore, WorkflowNotFoundError, NodeNotFoundError
from .editor import ConfigEditor
from .websockets import manager

# Setup Logging
logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
logger = logging.getLogger(__name__)

app = FastAPI(title="QuantumTask Flow Builder")

# Loop used to push store events (raised on worker threads) to WebSocket clients
loop_instance = None

@app.on_event("startup")
async def set_loop():
    global loop_instance
    loop_instance = asyncio.get_running_loop()

@app.on_event("shutdown")
async def clear_loop():
    global loop_instance
    loop_instance = None

def event_callback(event, payload):
    if loop_instance:
        graph_event = GraphEvent(type=event, payload=payload)
        asyncio.run_coroutine_threadsafe(manager.broadcast(graph_event), loop_instance)
    else:
        logger.debug(f"No event loop yet, dropping {event} event")

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

store = GraphStore(on_event=event_callback)
store.create_workflow(config.DEFAULT_WORKFLOW)

@app.get("/")
def read_root():
    return {"message": "QuantumTask Flow Builder API"}

@app.get("/api/nodes", response_model=List[NodeMetadata])
def get_nodes():
    return registry.get_all_metadata()

# --- WORKFLOW ENDPOINTS ---

@app.get("/api/workflows")
def list_workflows():
    return store.list_workflows()

@app.post("/api/workflows")
def create_workflow(name: str = Body(..., embed=True)):
    try:
        store.create_workflow(name)
        return {"status": "created", "name": name}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@app.get("/api/workflows/{name}", response_model=Workflow)
def load_workflow(name: str):
    try:
        return store.get_workflow(name)
    except WorkflowNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

@app.put("/api/workflows/{name}", response_model=Workflow)
def save_workflow(name: str, workflow: Workflow):
    try:
        return store.save_workflow(name, workflow)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@app.delete("/api/workflows/{name}")
def delete_workflow(name: str):
    try:
        store.delete_workflow(name)
        return {"status": "deleted", "name": name}
    except WorkflowNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

# --- NODE ENDPOINTS ---

@app.post("/api/workflows/{name}/nodes", response_model=FlowNode)
def add_node(name: str, request: AddNodeRequest):
    try:
        return store.add_node(name, request.type, node_id=request.id,
                              position=request.position, description=request.description)
    except WorkflowNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@app.get("/api/workflows/{name}/nodes/{node_id}", response_model=FlowNode)
def get_node(name: str, node_id: str):
    try:
        return store.get_node(name, node_id)
    except (WorkflowNotFoundError, NodeNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))

@app.delete("/api/workflows/{name}/nodes/{node_id}")
def delete_node(name: str, node_id: str):
    try:
        store.delete_node(name, node_id)
        return {"status": "deleted", "id": node_id}
    except (WorkflowNotFoundError, NodeNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))

@app.post("/api/workflows/{name}/nodes/{node_id}/toggle")
def toggle_node(name: str, node_id: str):
    try:
        return {"id": node_id, "enabled": store.toggle_node(name, node_id)}
    except (WorkflowNotFoundError, NodeNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))

@app.put("/api/workflows/{name}/nodes/{node_id}/config", response_model=FlowNode)
def save_node_config(name: str, node_id: str, update: ConfigUpdate):
    try:
        editor = ConfigEditor(store, name, node_id)
        editor.update(update.changes)
    except (WorkflowNotFoundError, NodeNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not editor.save():
        raise HTTPException(status_code=400, detail=editor.error_message)
    return store.get_node(name, node_id)

@app.get("/api/workflows/{name}/nodes/{node_id}/status")
def get_node_status(name: str, node_id: str):
    try:
        return {"id": node_id, "status": store.node_status(name, node_id).value}
    except (WorkflowNotFoundError, NodeNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))

@app.post("/api/workflows/{name}/nodes/{node_id}/result")
def report_result(name: str, node_id: str, result: ExecutionResult):
    try:
        status = store.record_result(name, node_id, output=result.output, error=result.error)
        return {"id": node_id, "status": status.value}
    except (WorkflowNotFoundError, NodeNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))

# --- EDGE ENDPOINTS ---

@app.post("/api/workflows/{name}/edges", response_model=Edge)
def add_edge(name: str, edge: Edge):
    try:
        return store.add_edge(name, edge)
    except WorkflowNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@app.delete("/api/workflows/{name}/edges")
def remove_edge(name: str, edge: Edge):
    try:
        store.remove_edge(name, edge)
        return {"status": "deleted"}
    except WorkflowNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@app.websocket("/api/ws")
async def websocket_endpoint(websocket: WebSocket, workflow: Optional[str] = None):
    await manager.connect(websocket, workflow)
    try:
        while True:
            # Keep alive / listen
            await websocket.receive_text()
    except WebSocketDisconnect:
        manager.disconnect(websocket)


# Log Buffer
log_buffer = []

class ListHandler(logging.Handler):
    def emit(self, record):
        log_buffer.append(self.format(record))
        if len(log_buffer) > config.LOG_BUFFER_SIZE:
            log_buffer.pop(0)

handler = ListHandler()
handler.setFormatter(logging.Formatter(config.LOG_FORMAT))
logging.getLogger().addHandler(handler)

@app.get("/api/logs")
def get_logs():
    return log_buffer

if __name__ == "__main__":
    uvicorn.run("quantumtask.main:app", host=config.HOST, port=config.PORT, reload=True)
